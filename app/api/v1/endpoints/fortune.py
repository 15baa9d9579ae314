from typing import Optional

from fastapi import APIRouter, Depends

from app.api.deps import Services, get_current_member, get_services
from app.models.fortune import FortuneResult
from app.models.member import Member

router = APIRouter()


@router.get("/today", response_model=Optional[FortuneResult])
async def todays_fortune(
    services: Services = Depends(get_services),
    member: Member = Depends(get_current_member),
):
    """Today's stored result, or null when a draw is still available"""
    return services.fortune.today(member)


@router.post("/draw", response_model=FortuneResult)
async def draw_fortune(
    services: Services = Depends(get_services),
    member: Member = Depends(get_current_member),
):
    """Draw once per business day; repeat calls return the stored result"""
    return services.fortune.draw(member)
