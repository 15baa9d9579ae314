from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, Field, field_validator

from app.models.base import DirectoryModel, _utcnow, object_id_to_str


class PointRequestType(str, Enum):
    INSTAGRAM = "instagram"


class PointRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PointRequest(DirectoryModel):
    """A member's claim for a loyalty point, decided once by the operator."""
    id: str = Field(default="", validation_alias=AliasChoices("id", "_id"))
    member_email: str
    nickname: str
    type: PointRequestType = PointRequestType.INSTAGRAM
    status: PointRequestStatus = PointRequestStatus.PENDING
    requested_at: datetime = Field(default_factory=_utcnow)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return object_id_to_str(value)

    @property
    def is_pending(self) -> bool:
        return self.status == PointRequestStatus.PENDING

    def to_document(self) -> dict:
        # the directory assigns the id
        return self.model_dump(by_alias=True, exclude={"id"})
