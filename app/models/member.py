from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from app.models.base import DirectoryModel, _utcnow, normalize_email

UNSET = "unset"


class Member(DirectoryModel):
    """Member record, keyed by normalized email."""
    nickname: str
    email: str
    gender: str = UNSET
    age_group: str = UNSET
    serial_number: str
    points: int = Field(default=0, ge=0)
    is_subscribed: bool = False
    tarot_uses_count: int = Field(default=0, ge=0)
    tarot_credits: int = Field(default=0, ge=0)
    tarot_member_since: Optional[datetime] = None
    registered_at: datetime = Field(default_factory=_utcnow)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        value = normalize_email(value)
        if not value:
            raise ValueError("email must not be empty")
        return value

    @field_validator("gender", "age_group", mode="before")
    @classmethod
    def _default_unset(cls, value):
        return value or UNSET


class MemberCreate(DirectoryModel):
    """Registration input."""
    nickname: Optional[str] = None
    email: Optional[str] = None
    gender: Optional[str] = None
    age_group: Optional[str] = None
