"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class OverpaymentError(DomainException):
    """Payment would push paid amount above the order total"""

    def __init__(self, remaining_cents: int, attempted_cents: int | None = None):
        self.remaining_cents = remaining_cents
        self.attempted_cents = attempted_cents
        super().__init__(f"Payment exceeds total amount. Remaining: {remaining_cents}")


class InvalidPaymentError(DomainException):
    """Payment amount or source is malformed"""

    pass


class InvalidScheduleError(DomainException):
    """Installment schedule inputs are out of range"""

    pass


class NotFoundError(DomainException):
    """Referenced order, bicycle or user does not exist"""

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class OrderStateError(DomainException):
    """Operation not allowed for the order in its current state"""

    pass


class ConcurrentUpdateError(DomainException):
    """Order was modified by another writer between read and write"""

    pass


class PaymentProcessorError(DomainException):
    """Payment processor returned an error or is unavailable"""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def rejected(self) -> bool:
        """Processor answered with a 4xx: the request itself is bad, not the service"""
        return self.status_code is not None and 400 <= self.status_code < 500


class PaymentNotConfirmedError(DomainException):
    """Processor reports the charge as not (yet) succeeded"""

    pass


class AuthenticationError(DomainException):
    """No authenticated identity on the request"""

    pass


class AuthorizationError(DomainException):
    """Caller is not allowed to perform the operation"""

    pass


class DuplicatePaymentError(DomainException):
    """Processor transaction is already recorded against another order"""

    def __init__(self, transaction_id: str, order_id: object | None = None):
        self.transaction_id = transaction_id
        self.order_id = order_id
        super().__init__(f"Transaction {transaction_id} is already recorded on order {order_id}")
