from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from studio_booking.core.security import require_session
from studio_booking.db.session import get_db
from studio_booking.schemas.auth import TokenPayload
from studio_booking.schemas.customer import Customer, CustomerUpdate
from studio_booking.services.catalog import catalog_service

router = APIRouter()


@router.get("/{customer_id}", response_model=Customer)
async def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """
    Get Customer

    Returns the customer profile, including the cancellation count and the
    date of the last booking.
    """
    return catalog_service.get_customer(db, customer_id=customer_id)


@router.put("/{customer_id}", response_model=Customer)
async def update_customer(
    customer_id: int,
    customer_in: CustomerUpdate,
    db: Session = Depends(get_db),
    session: TokenPayload = Depends(require_session),
) -> Any:
    """Update Customer"""
    return catalog_service.update_customer(db, customer_id=customer_id, customer_in=customer_in)
