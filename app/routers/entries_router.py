from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from starlette import status

from app.core.actor import Actor, get_actor
from app.schemas.entry_schemas import EntryCreate, EntryOut, EntryUpdate
from app.schemas.payment_schemas import PaymentCreate, PaymentEdit
from app.schemas.transaction_log_schemas import TransactionLogOut
from app.services import entry_service, payment_recorder, transaction_log
from app.utils.database import get_db

router = APIRouter(prefix="/entries", tags=["Entries"])


@router.post("", response_model=EntryOut, status_code=status.HTTP_201_CREATED)
def create_entry(payload: EntryCreate, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return entry_service.create_entry(db, actor=actor, **payload.model_dump())


@router.get("", response_model=list[EntryOut])
def list_entries(
        user_id: Optional[int] = Query(None),
        status_filter: Optional[str] = Query(None, alias="status"),
        limit: int = Query(50, ge=1, le=200),
        offset: int = Query(0, ge=0),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    return entry_service.list_entries(db, user_id=user_id, status=status_filter, limit=limit, offset=offset)


@router.get("/deleted", response_model=list[EntryOut])
def list_deleted_entries(
        user_id: Optional[int] = Query(None),
        limit: int = Query(50, ge=1, le=200),
        offset: int = Query(0, ge=0),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    return entry_service.list_entries(db, user_id=user_id, deleted=True, limit=limit, offset=offset)


@router.get("/{entry_id}", response_model=EntryOut)
def get_entry(entry_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return entry_service.get_entry(db, entry_id)


@router.put("/{entry_id}", response_model=EntryOut)
def update_entry(
        entry_id: int,
        payload: EntryUpdate,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    return entry_service.update_entry(db, entry_id, actor=actor, **payload.model_dump(exclude_unset=True))


@router.delete("/{entry_id}", response_model=EntryOut)
def delete_entry(entry_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return payment_recorder.soft_delete_entry(db, entry_id, actor=actor)


@router.put("/{entry_id}/restore", response_model=EntryOut)
def restore_entry(entry_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return payment_recorder.restore_entry(db, entry_id, actor=actor)


# -------------------------------------------------
# Payments
# -------------------------------------------------
@router.post("/{entry_id}/payments", response_model=EntryOut, status_code=status.HTTP_201_CREATED)
def add_payment(
        entry_id: int,
        payload: PaymentCreate,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    entry, _ = payment_recorder.record_payment(
        db,
        entry_id,
        amount=payload.amount,
        payment_date=payload.date,
        mode=payload.mode,
        file_url=payload.file_url,
        actor=actor,
    )
    return entry


@router.patch("/{entry_id}/payments/{index}", response_model=EntryOut)
def edit_payment(
        entry_id: int,
        index: int,
        payload: PaymentEdit,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    return payment_recorder.edit_payment(
        db,
        entry_id,
        index,
        actor=actor,
        payment_date=payload.date,
        amount=payload.amount,
        mode=payload.mode,
        file_url=payload.file_url,
    )


@router.delete("/{entry_id}/payments/{index}", response_model=EntryOut)
def delete_payment(entry_id: int, index: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return payment_recorder.delete_payment(db, entry_id, index, actor=actor)


@router.get("/{entry_id}/transaction-logs", response_model=list[TransactionLogOut])
def entry_logs(entry_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    entry_service.get_entry(db, entry_id)
    return transaction_log.list_logs(db, entry_id=entry_id, record_kind=transaction_log.KIND_ENTRY)
