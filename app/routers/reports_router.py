from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.actor import Actor, get_actor
from app.schemas.report_schemas import DailyPaymentsOut, UserSummaryOut
from app.services import reports
from app.utils.database import get_db

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/daily-payments", response_model=DailyPaymentsOut)
def daily_payments(
        year: Optional[int] = Query(None, ge=2000, le=2100),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    year = year or date.today().year
    days = reports.daily_payments(db, year)
    return {"year": year, "total": sum(days.values()), "days": days}


@router.get("/users/{user_id}/summary", response_model=UserSummaryOut)
def user_summary(user_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return reports.user_summary(db, user_id)
