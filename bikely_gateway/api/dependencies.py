"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from bikely_gateway.domain.exceptions import AuthenticationError, AuthorizationError
from bikely_gateway.domain.models import Order, User
from bikely_gateway.infrastructure.clients.payment_processor import PaymentProcessorClient
from bikely_gateway.infrastructure.database.repositories import UserRepository
from bikely_gateway.infrastructure.database.session import get_db
from bikely_gateway.utils.date_utils import now_ms


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_processor_client() -> PaymentProcessorClient:
    """Provide payment processor client instance"""
    return PaymentProcessorClient()


def get_now_ms() -> int:
    """Injected clock, overridden in tests"""
    return now_ms()


def get_auth_subject(x_auth_subject: str | None = Header(default=None)) -> str:
    """Subject of the identity-provider session, set by the auth proxy"""
    if not x_auth_subject:
        raise AuthenticationError("Unauthenticated")
    return x_auth_subject


def get_current_user(
    auth_subject: str = Depends(get_auth_subject),
    db: Session = Depends(get_db),
) -> User:
    user = UserRepository(db).get_by_subject(auth_subject)
    if user is None:
        raise AuthenticationError("User not found")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise AuthorizationError("Unauthorized")
    return user


def ensure_owner_or_admin(user: User, order: Order) -> None:
    """Customers may only see and act on their own orders"""
    if not user.is_admin and order.user_id != user.id:
        raise AuthorizationError("Unauthorized")
