import logging
from typing import Optional

from app.core.errors import MemberNotFoundError, MembershipError, NotLoggedInError
from app.db.local_cache import LocalCache
from app.models.base import normalize_email
from app.models.member import Member

logger = logging.getLogger(__name__)


class SessionContext:
    """The member signed in on this device, if any.

    ``epoch`` moves on every identity change so that a lookup started under
    an older session can tell its result no longer applies.
    """

    def __init__(self):
        self.member: Optional[Member] = None
        self.epoch = 0

    def begin(self, member: Member) -> None:
        self.member = member
        self.epoch += 1

    def clear(self) -> None:
        self.member = None
        self.epoch += 1

    def is_current(self, epoch: int) -> bool:
        return epoch == self.epoch

    def require(self) -> Member:
        if self.member is None:
            raise NotLoggedInError()
        return self.member

    def refresh(self, member: Member) -> None:
        """Replace the in-memory copy if ``member`` is the signed-in one."""
        if self.member is not None and self.member.email == member.email:
            self.member = member


class SessionManager:
    """Login, logout and session restore on top of the membership ledger."""

    def __init__(self, ledger, cache: LocalCache, context: SessionContext):
        self.ledger = ledger
        self.cache = cache
        self.context = context

    @property
    def current(self) -> Optional[Member]:
        return self.context.member

    async def restore_session(self) -> Optional[Member]:
        """Resolve the saved email from the last run, quietly."""
        saved_email = self.cache.get_session_email()
        if not saved_email:
            return None

        epoch = self.context.epoch
        try:
            member = await self.ledger.find_member(saved_email)
        except MembershipError as e:
            logger.warning("Session restore failed: %s", e)
            return None

        if not self.context.is_current(epoch):
            logger.info("Discarding stale session restore for %s", saved_email)
            return self.context.member
        if member is None:
            logger.info("Saved session %s no longer resolves to a member", saved_email)
            return None

        self.context.begin(member)
        return member

    async def login(self, nickname: str, email: str) -> Optional[Member]:
        """Sign in when the email resolves and the nickname matches exactly.

        A wrong nickname and an unknown email both raise the same
        ``MemberNotFoundError``. Returns None if the session changed while
        the lookup was in flight.
        """
        normalized_email = normalize_email(email)
        normalized_nickname = (nickname or "").strip()

        epoch = self.context.epoch
        found = await self.ledger.find_member(normalized_email)
        if not self.context.is_current(epoch):
            logger.info("Discarding stale login result for %s", normalized_email)
            return None

        if found is None or found.nickname != normalized_nickname:
            raise MemberNotFoundError()

        self.context.begin(found)
        self.cache.set_session_email(found.email)
        return found

    def logout(self) -> None:
        self.context.clear()
        self.cache.clear_session_email()
