from fastapi import APIRouter, Depends, status

from app.api.deps import Services, get_current_member, get_services, to_http_error
from app.core.config import settings
from app.core.errors import MembershipError
from app.models.member import Member
from app.models.point_request import PointRequest
from app.schemas.member import (
    MemberResponse,
    StaffGrantRequest,
    TarotKeyIssueResponse,
    TarotKeyRedeemRequest,
    TarotKeyRedeemResponse,
)

router = APIRouter()


def _card(member: Member) -> MemberResponse:
    return MemberResponse.from_member(member, settings.POINTS_REWARD_THRESHOLD)


@router.post("/me/points/staff-grant", response_model=MemberResponse)
async def staff_grant_points(
    body: StaffGrantRequest,
    services: Services = Depends(get_services),
    member: Member = Depends(get_current_member),
):
    """In-store point grant, confirmed by staff passphrase"""
    try:
        updated = await services.ledger.staff_grant_points(body.passphrase)
    except MembershipError as e:
        raise to_http_error(e)
    return _card(updated)


@router.post("/me/points/requests", response_model=PointRequest, status_code=status.HTTP_201_CREATED)
async def request_points(
    services: Services = Depends(get_services),
    member: Member = Depends(get_current_member),
):
    """Ask the owner for a point (e.g. after posting on Instagram)"""
    try:
        return await services.ledger.request_points(member)
    except MembershipError as e:
        raise to_http_error(e)


@router.post("/me/tarot/use", response_model=MemberResponse)
async def use_tarot(
    services: Services = Depends(get_services),
    member: Member = Depends(get_current_member),
):
    """Spend one tarot reading (credits first, then free uses)"""
    try:
        updated = await services.ledger.use_tarot(member)
    except MembershipError as e:
        raise to_http_error(e)
    return _card(updated)


@router.post("/me/tarot/keys", response_model=TarotKeyIssueResponse, status_code=status.HTTP_201_CREATED)
async def issue_tarot_key(
    services: Services = Depends(get_services),
    member: Member = Depends(get_current_member),
):
    """Start a credit purchase; returns the key and the payment page"""
    try:
        tarot_key = await services.ledger.issue_tarot_key(member)
    except MembershipError as e:
        raise to_http_error(e)
    return TarotKeyIssueResponse(key=tarot_key, payment_url=settings.TAROT_PAYMENT_URL)


@router.post("/me/tarot/redeem", response_model=TarotKeyRedeemResponse)
async def redeem_tarot_key(
    body: TarotKeyRedeemRequest,
    services: Services = Depends(get_services),
    member: Member = Depends(get_current_member),
):
    """Activate a purchased key"""
    try:
        updated, tarot_key = await services.ledger.redeem_key(member, body.key)
    except MembershipError as e:
        raise to_http_error(e)
    return TarotKeyRedeemResponse(member=_card(updated), credits_added=tarot_key.credits)
