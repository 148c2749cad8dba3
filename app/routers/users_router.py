from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette import status

from app.core.actor import Actor, get_actor, require_admin
from app.core.exceptions import BusinessRuleError, RecordNotFoundError
from app.models.user_model import User
from app.schemas.user_schemas import AdvanceBalanceOut, UserCreate, UserOut
from app.services import advance_ledger
from app.utils.database import get_db

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise RecordNotFoundError("User not found")
    return user


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
        payload: UserCreate,
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    require_admin(actor)

    user = User(**payload.model_dump())
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise BusinessRuleError(f"Username '{payload.username}' already exists")
    db.refresh(user)
    return user


@router.get("", response_model=list[UserOut])
def list_users(
        role: Optional[str] = Query(None),
        db: Session = Depends(get_db),
        actor: Actor = Depends(get_actor),
):
    q = db.query(User).filter(User.is_active.is_(True))
    if role:
        q = q.filter(User.role == role.lower())
    return q.order_by(User.name.asc()).all()


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    return get_user_or_404(db, user_id)


@router.get("/{user_id}/advance-balance", response_model=AdvanceBalanceOut)
def advance_balance(user_id: int, db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    get_user_or_404(db, user_id)
    return AdvanceBalanceOut(
        user_id=user_id,
        total_deposits=advance_ledger.total_deposits(db, user_id),
        total_usages=advance_ledger.total_usages(db, user_id),
        balance=advance_ledger.remaining_balance(db, user_id),
    )
