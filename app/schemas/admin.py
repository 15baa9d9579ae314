from pydantic import Field

from app.models.base import DirectoryModel
from app.models.point_request import PointRequest
from app.schemas.member import MemberResponse


class CreditGrantRequest(DirectoryModel):
    email: str = Field(..., min_length=3)
    amount: int


class PointDecisionResponse(DirectoryModel):
    request: PointRequest
    member: MemberResponse | None = None
