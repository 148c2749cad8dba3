from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from starlette import status

from app.core.actor import Actor, get_actor, require_writer
from app.schemas.advance_payment_schemas import (
    AdvancePaymentCreate,
    AdvancePaymentOut,
    AdvanceUsageOut,
)
from app.services import advance_ledger
from app.utils.database import get_db

router = APIRouter(prefix="/advance-payments", tags=["Advance Payments"])


@router.post("", response_model=AdvancePaymentOut, status_code=status.HTTP_201_CREATED)
def create_advance_payment(
        payload: AdvancePaymentCreate,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    require_writer(actor)
    return advance_ledger.create_deposit(
        db,
        user_id=payload.user_id,
        amount=payload.amount,
        on_date=payload.date,
        payment_mode=payload.payment_mode,
        attachment_url=payload.attachment_url,
        actor=actor,
    )


@router.get("", response_model=list[AdvancePaymentOut])
def list_advance_payments(
        user_id: Optional[int] = Query(None),
        from_date: Optional[date] = Query(None),
        to_date: Optional[date] = Query(None),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    return advance_ledger.list_deposits(db, user_id=user_id, from_date=from_date, to_date=to_date)


@router.get("/usages", response_model=list[AdvanceUsageOut])
def list_advance_usages(
        user_id: Optional[int] = Query(None),
        entry_id: Optional[int] = Query(None),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    return advance_ledger.list_usages(db, user_id=user_id, entry_id=entry_id)
