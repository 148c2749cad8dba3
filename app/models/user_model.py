from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, Index
from sqlalchemy.sql import func
from app.utils.database import Base


class User(Base):
    __tablename__ = "users"

    __table_args__ = (
        Index("ix_users_role", "role"),
    )

    user_id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False)
    name = Column(String(150), nullable=False)
    mobile = Column(String(20), nullable=False, server_default="")
    address = Column(Text, nullable=False, server_default="")

    # admin / operator / viewer
    role = Column(String(20), nullable=False, server_default="viewer")
    is_active = Column(Boolean, nullable=False, default=True)

    created_on = Column(DateTime, server_default=func.now())
