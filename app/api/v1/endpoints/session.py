from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import Services, get_services, to_http_error
from app.core.config import settings
from app.core.errors import MembershipError
from app.models.member import MemberCreate
from app.schemas.member import LoginRequest, MemberResponse, RegisterRequest, SessionResponse

router = APIRouter()


def _session_response(services: Services) -> SessionResponse:
    member = services.context.member
    if member is None:
        return SessionResponse(member=None)
    return SessionResponse(
        member=MemberResponse.from_member(member, settings.POINTS_REWARD_THRESHOLD)
    )


@router.post("/register", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, services: Services = Depends(get_services)):
    """Register a new member and sign them in"""
    try:
        member = await services.ledger.register(MemberCreate(**body.model_dump()))
    except MembershipError as e:
        raise to_http_error(e)
    return MemberResponse.from_member(member, settings.POINTS_REWARD_THRESHOLD)


@router.post("/login", response_model=MemberResponse)
async def login(body: LoginRequest, services: Services = Depends(get_services)):
    """Login with nickname and email"""
    try:
        member = await services.session.login(body.nickname, body.email)
    except MembershipError as e:
        raise to_http_error(e)
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The session changed while logging in, please retry"
        )
    return MemberResponse.from_member(member, settings.POINTS_REWARD_THRESHOLD)


@router.post("/logout", response_model=SessionResponse)
async def logout(services: Services = Depends(get_services)):
    services.session.logout()
    return SessionResponse(member=None)


@router.get("/me", response_model=SessionResponse)
async def me(services: Services = Depends(get_services)):
    """Current member card, if anyone is signed in"""
    return _session_response(services)


@router.post("/restore", response_model=SessionResponse)
async def restore(services: Services = Depends(get_services)):
    """Re-resolve the saved session (runs at startup too)"""
    await services.session.restore_session()
    return _session_response(services)
