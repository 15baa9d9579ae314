from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from app.core.config import settings
from app.core.errors import MembershipError, StaffAuthError
from app.core.security import verify_staff_passphrase
from app.db.local_cache import LocalCache
from app.models.member import Member
from app.repositories.directory import DirectoryClient
from app.services.admin_service import AdminConsole
from app.services.fortune_service import FortuneTeller
from app.services.membership_service import MembershipLedger
from app.services.quota_service import BusinessClock
from app.services.recipe_service import RecipeFeed
from app.services.session_service import SessionContext, SessionManager
from app.utils.id_generation import IdGenerator, RandomIdGenerator


@dataclass
class Services:
    """Everything one client process needs, wired once at startup."""
    directory: DirectoryClient
    cache: LocalCache
    clock: BusinessClock
    context: SessionContext
    ledger: MembershipLedger
    session: SessionManager
    recipes: RecipeFeed
    fortune: FortuneTeller
    admin: AdminConsole


def build_services(
    directory: DirectoryClient,
    cache: LocalCache,
    clock: Optional[BusinessClock] = None,
    ids: Optional[IdGenerator] = None,
    fortune_rng=None,
) -> Services:
    clock = clock or BusinessClock(settings.BUSINESS_TIMEZONE)
    ids = ids or RandomIdGenerator()
    context = SessionContext()
    ledger = MembershipLedger(directory, cache, context, ids=ids, clock=clock)
    return Services(
        directory=directory,
        cache=cache,
        clock=clock,
        context=context,
        ledger=ledger,
        session=SessionManager(ledger, cache, context),
        recipes=RecipeFeed(directory, cache, clock, ids=ids),
        fortune=FortuneTeller(cache, clock, rng=fortune_rng),
        admin=AdminConsole(directory, ledger),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_member(services: Services = Depends(get_services)) -> Member:
    """The signed-in member, or 401."""
    try:
        return services.context.require()
    except MembershipError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


async def get_admin_console(
    services: Services = Depends(get_services),
    x_staff_passphrase: Optional[str] = Header(default=None),
) -> AdminConsole:
    """Operator console behind the shared passphrase; starts its live views."""
    try:
        verify_staff_passphrase(x_staff_passphrase, services.ledger.staff_passphrase)
    except StaffAuthError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.message)
    services.admin.start()
    return services.admin


def to_http_error(error: MembershipError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)
