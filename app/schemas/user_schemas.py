from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, Literal


class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=150)
    mobile: str = ""
    address: str = ""
    role: Literal["admin", "operator", "viewer"] = "viewer"

    @field_validator("username", "name", mode="before")
    def strip_text(cls, v):
        return str(v).strip() if v is not None else v


class UserOut(BaseModel):
    user_id: int
    username: str
    name: str
    mobile: str
    address: str
    role: str
    is_active: bool
    created_on: Optional[datetime] = None

    class Config:
        from_attributes = True


class AdvanceBalanceOut(BaseModel):
    user_id: int
    total_deposits: int
    total_usages: int
    balance: int
