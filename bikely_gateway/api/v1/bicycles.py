"""Catalog endpoints - bicycles and their installment plans"""

import uuid
from dataclasses import replace
from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from bikely_gateway.api.v1.schemas import BicycleCreateRequest, BicycleResponse, BicycleUpdateRequest
from bikely_gateway.api.dependencies import require_admin
from bikely_gateway.domain.installments import allocate_installment_amounts, validate_plan
from bikely_gateway.domain.models import Bicycle, User
from bikely_gateway.infrastructure.database.repositories import BicycleRepository
from bikely_gateway.infrastructure.database.session import get_db

router = APIRouter()


def to_bicycle_response(bicycle: Bicycle) -> BicycleResponse:
    plan = bicycle.plan
    amounts = allocate_installment_amounts(bicycle.price_cents, plan.duration) if plan.available and plan.duration else []
    return BicycleResponse(
        id=bicycle.id,
        name=bicycle.name,
        description=bicycle.description,
        price_cents=bicycle.price_cents,
        stock=bicycle.stock,
        is_featured=bicycle.is_featured,
        installment_available=plan.available,
        installment_duration=plan.duration,
        installment_interval=plan.interval,
        installment_amounts_cents=amounts,
    )


@router.post("/bicycles", response_model=BicycleResponse, status_code=201)
def create_bicycle(
    request_body: BicycleCreateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    bicycle = BicycleRepository(db).create(**request_body.model_dump())
    db.commit()
    return to_bicycle_response(bicycle)


@router.get("/bicycles", response_model=List[BicycleResponse])
def list_bicycles(db: Session = Depends(get_db)):
    return [to_bicycle_response(b) for b in BicycleRepository(db).list_all()]


@router.get("/bicycles/{bicycle_id}", response_model=BicycleResponse)
def get_bicycle(bicycle_id: uuid.UUID, db: Session = Depends(get_db)):
    bicycle = BicycleRepository(db).get_by_id(bicycle_id)
    if not bicycle:
        raise HTTPException(status_code=404, detail="Bicycle not found")
    return to_bicycle_response(bicycle)


@router.patch("/bicycles/{bicycle_id}", response_model=BicycleResponse)
def update_bicycle(
    bicycle_id: uuid.UUID,
    request_body: BicycleUpdateRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Partial update of a catalog entry.

    Plan edits only affect new orders: existing installment orders keep the
    plan snapshotted at checkout.
    """
    repo = BicycleRepository(db)
    current = repo.get_by_id(bicycle_id)
    if not current:
        raise HTTPException(status_code=404, detail="Bicycle not found")

    updates = request_body.model_dump(exclude_unset=True)
    merged_plan = replace(
        current.plan,
        available=updates.get("installment_available", current.plan.available),
        duration=updates.get("installment_duration", current.plan.duration),
        interval=updates.get("installment_interval", current.plan.interval),
    )
    validate_plan(merged_plan)

    bicycle = repo.update(bicycle_id, **updates)
    db.commit()
    return to_bicycle_response(bicycle)
