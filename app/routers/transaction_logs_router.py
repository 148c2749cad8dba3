from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.actor import Actor, get_actor
from app.schemas.transaction_log_schemas import TransactionLogOut
from app.services import transaction_log
from app.utils.database import get_db

router = APIRouter(prefix="/transaction-logs", tags=["Transaction Logs"])


@router.get("", response_model=list[TransactionLogOut])
def list_logs(
        entry_id: Optional[int] = Query(None),
        record_kind: Optional[str] = Query(None),
        limit: int = Query(200, ge=1, le=1000),
        offset: int = Query(0, ge=0),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    return transaction_log.list_logs(db, entry_id=entry_id, record_kind=record_kind, limit=limit, offset=offset)
