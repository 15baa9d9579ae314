from datetime import datetime

from pydantic import Field, field_validator

from app.models.base import DirectoryModel, _utcnow, normalize_email


class TarotKey(DirectoryModel):
    """One-time redemption key issued when a credit purchase starts."""
    key: str = Field(..., min_length=1)
    email: str
    credits: int = Field(..., ge=0)
    is_used: bool = False
    issued_at: datetime = Field(default_factory=_utcnow)

    @field_validator("key")
    @classmethod
    def _upper_key(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)
