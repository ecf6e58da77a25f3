"""User registration and profile endpoints"""

from dataclasses import asdict
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bikely_gateway.api.v1.schemas import AddressSchema, UserResponse, UserStoreRequest
from bikely_gateway.api.dependencies import get_auth_subject, get_current_user
from bikely_gateway.domain.models import ShippingAddress, User
from bikely_gateway.infrastructure.database.repositories import UserRepository
from bikely_gateway.infrastructure.database.session import get_db

router = APIRouter()


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role.value,
        address=AddressSchema(**asdict(user.address)) if user.address else None,
    )


@router.post("/users", response_model=UserResponse)
def store_user(
    request_body: UserStoreRequest,
    auth_subject: str = Depends(get_auth_subject),
    db: Session = Depends(get_db),
):
    """Register the signed-in identity; repeated calls return the same user"""
    user = UserRepository(db).store(auth_subject, request_body.name, request_body.email)
    db.commit()
    return to_user_response(user)


@router.get("/users/me", response_model=UserResponse)
def get_me(user: User = Depends(get_current_user)):
    return to_user_response(user)


@router.put("/users/me/address", response_model=UserResponse)
def update_my_address(
    request_body: AddressSchema,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Set the address snapshotted onto future orders"""
    updated = UserRepository(db).update_address(user.id, ShippingAddress(**request_body.model_dump()))
    db.commit()
    return to_user_response(updated)
