from typing import List, Optional

from fastapi import APIRouter, Depends

from app.api.deps import get_admin_console, to_http_error
from app.core.config import settings
from app.core.errors import MembershipError
from app.models.member import Member
from app.models.point_request import PointRequest
from app.models.recipe import RecipePost
from app.models.tarot_key import TarotKey
from app.schemas.admin import CreditGrantRequest, PointDecisionResponse
from app.schemas.member import MemberResponse
from app.services.admin_service import AdminConsole

router = APIRouter()


@router.get("/members", response_model=List[Member])
async def list_members(console: AdminConsole = Depends(get_admin_console)):
    """Members, newest registration first"""
    return console.members


@router.get("/tarot-keys", response_model=List[TarotKey])
async def list_tarot_keys(console: AdminConsole = Depends(get_admin_console)):
    return console.tarot_keys


@router.get("/point-requests", response_model=List[PointRequest])
async def list_pending_point_requests(console: AdminConsole = Depends(get_admin_console)):
    """Pending point requests only"""
    return console.point_requests


@router.get("/recipes", response_model=List[RecipePost])
async def list_recipes(console: AdminConsole = Depends(get_admin_console)):
    return console.recipes


@router.post("/refresh")
async def refresh(console: AdminConsole = Depends(get_admin_console)):
    await console.refresh()
    return {"loading": console.loading}


@router.post("/credits", response_model=Optional[MemberResponse])
async def grant_credits(
    body: CreditGrantRequest,
    console: AdminConsole = Depends(get_admin_console),
):
    """Grant tarot credits by email (0 does nothing)"""
    try:
        member = await console.grant_credits(body.email, body.amount)
    except MembershipError as e:
        raise to_http_error(e)
    if member is None:
        return None
    return MemberResponse.from_member(member, settings.POINTS_REWARD_THRESHOLD)


@router.post("/point-requests/{request_id}/approve", response_model=PointDecisionResponse)
async def approve_point_request(
    request_id: str,
    console: AdminConsole = Depends(get_admin_console),
):
    try:
        request, member = await console.approve(request_id)
    except MembershipError as e:
        raise to_http_error(e)
    return PointDecisionResponse(
        request=request,
        member=MemberResponse.from_member(member, settings.POINTS_REWARD_THRESHOLD),
    )


@router.post("/point-requests/{request_id}/reject", response_model=PointDecisionResponse)
async def reject_point_request(
    request_id: str,
    console: AdminConsole = Depends(get_admin_console),
):
    try:
        request = await console.reject(request_id)
    except MembershipError as e:
        raise to_http_error(e)
    return PointDecisionResponse(request=request)
