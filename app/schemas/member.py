"""Member-facing request/response schemas."""
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.models.base import DirectoryModel
from app.models.member import Member
from app.models.tarot_key import TarotKey


class MemberResponse(Member):
    """Member card, with progress towards the next reward."""
    reward_progress: int = 0

    @classmethod
    def from_member(cls, member: Member, reward_threshold: int) -> "MemberResponse":
        progress = min(member.points * 100 // reward_threshold, 100) if reward_threshold > 0 else 100
        return cls(**member.model_dump(), reward_progress=progress)


class StaffGrantRequest(BaseModel):
    """Shop staff enter the shared passphrase on the member's device."""
    passphrase: str = Field(..., min_length=1)


class TarotKeyIssueResponse(DirectoryModel):
    key: TarotKey
    payment_url: str


class TarotKeyRedeemRequest(BaseModel):
    key: str = Field(..., min_length=1, max_length=32)


class TarotKeyRedeemResponse(DirectoryModel):
    member: MemberResponse
    credits_added: int


class RegisterRequest(DirectoryModel):
    email: EmailStr
    nickname: Optional[str] = Field(default=None, max_length=50)
    gender: Optional[str] = None
    age_group: Optional[str] = None


class LoginRequest(BaseModel):
    nickname: str
    email: str


class SessionResponse(BaseModel):
    member: Optional[MemberResponse] = None
