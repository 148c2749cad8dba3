from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from starlette import status

from app.core.actor import Actor, get_actor
from app.schemas.outstanding_schemas import (
    OutstandingCreate,
    OutstandingOut,
    OutstandingPaymentOut,
    ReceiptBackfillOut,
)
from app.schemas.payment_schemas import PaymentCreate, PaymentEdit
from app.services import outstanding_service
from app.utils.database import get_db

router = APIRouter(prefix="/previous-outstanding", tags=["Previous Outstanding"])


@router.post("", response_model=OutstandingOut, status_code=status.HTTP_201_CREATED)
def create_record(payload: OutstandingCreate, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return outstanding_service.create_record(db, actor=actor, **payload.model_dump())


@router.get("", response_model=list[OutstandingOut])
def list_records(
        user_id: Optional[int] = Query(None),
        status_filter: Optional[str] = Query(None, alias="status"),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    return outstanding_service.list_records(db, user_id=user_id, status=status_filter)


# before /{record_id} so "payments" is not parsed as an id
@router.get("/payments", response_model=list[OutstandingPaymentOut])
def list_payments(
        user_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    return outstanding_service.list_payments(db, user_id=user_id)


@router.post("/generate-receipts", response_model=ReceiptBackfillOut)
def generate_receipts(db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return outstanding_service.backfill_receipts(db, actor=actor)


@router.get("/{record_id}", response_model=OutstandingOut)
def get_record(record_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return outstanding_service.get_record(db, record_id)


@router.post("/{record_id}/payment", response_model=OutstandingOut, status_code=status.HTTP_201_CREATED)
def add_payment(
        record_id: int,
        payload: PaymentCreate,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    record, _ = outstanding_service.record_payment(
        db,
        record_id,
        amount=payload.amount,
        payment_date=payload.date,
        mode=payload.mode,
        file_url=payload.file_url,
        actor=actor,
    )
    return record


@router.patch("/{record_id}/payments/{index}", response_model=OutstandingOut)
def edit_payment(
        record_id: int,
        index: int,
        payload: PaymentEdit,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    return outstanding_service.edit_payment(
        db,
        record_id,
        index,
        actor=actor,
        payment_date=payload.date,
        amount=payload.amount,
        mode=payload.mode,
        file_url=payload.file_url,
    )


@router.delete("/{record_id}/payments/{index}", response_model=OutstandingOut)
def delete_payment(record_id: int, index: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return outstanding_service.delete_payment(db, record_id, index, actor=actor)
