from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def object_id_to_str(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    return value


class DirectoryModel(BaseModel):
    """Base for records stored in the directory and the local cache.

    Field names are snake_case in Python and camelCase on the wire
    (``tarot_uses_count`` <-> ``tarotUsesCount``).
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )

    def to_document(self) -> dict:
        """Serialize for the directory (datetimes kept native)."""
        return self.model_dump(by_alias=True)

    def to_cache(self) -> dict:
        """Serialize for the JSON local cache."""
        return self.model_dump(by_alias=True, mode="json")
