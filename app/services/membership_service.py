"""Membership ledger.

Member lookup and every change to the scarce counters on a member record
(points, tarot credits, free tarot uses, subscription flag), plus the
redemption-key and point-request state machines.

Writes are local-first: the local cache is always updated, the directory is
updated best-effort. Paired writes (credits + key used, points + request
approved) are two independent directory calls with no rollback.
"""
import logging
from collections import Counter
from typing import Iterable, List, Optional, Tuple

from bson import ObjectId

from app.core.config import settings
from app.core.errors import (
    DirectoryUnavailableError,
    DuplicateMemberError,
    InvalidKeyError,
    MemberNotFoundError,
    MissingFieldError,
    PointRequestNotFoundError,
    RequestAlreadyDecidedError,
    TarotExhaustedError,
)
from app.core.security import verify_staff_passphrase
from app.db.local_cache import LocalCache
from app.models.base import normalize_email
from app.models.member import Member, MemberCreate
from app.models.point_request import PointRequest, PointRequestStatus
from app.models.tarot_key import TarotKey
from app.repositories.directory import (
    MEMBERS,
    POINT_REQUESTS,
    TAROT_KEYS,
    DirectoryClient,
    Document,
    DocumentRef,
)
from app.services.quota_service import BusinessClock
from app.services.session_service import SessionContext
from app.utils.id_generation import IdGenerator, RandomIdGenerator

logger = logging.getLogger(__name__)

APPROVAL_POINTS = 1


class MembershipLedger:
    def __init__(
        self,
        directory: DirectoryClient,
        cache: LocalCache,
        context: SessionContext,
        ids: Optional[IdGenerator] = None,
        clock: Optional[BusinessClock] = None,
        free_tarot_uses: int = settings.FREE_TAROT_USES,
        tarot_key_credits: int = settings.TAROT_KEY_CREDITS,
        tarot_key_length: int = settings.TAROT_KEY_LENGTH,
        points_per_grant: int = settings.POINTS_PER_GRANT,
        default_nickname: str = settings.DEFAULT_NICKNAME,
        staff_passphrase: str = settings.STAFF_PASSPHRASE,
    ):
        self.directory = directory
        self.cache = cache
        self.context = context
        self.ids = ids or RandomIdGenerator()
        self.clock = clock or BusinessClock(settings.BUSINESS_TIMEZONE)
        self.free_tarot_uses = free_tarot_uses
        self.tarot_key_credits = tarot_key_credits
        self.tarot_key_length = tarot_key_length
        self.points_per_grant = points_per_grant
        self.default_nickname = default_nickname
        self.staff_passphrase = staff_passphrase
        # emails with a local write that has not reached the directory yet
        self._in_flight: Counter = Counter()

    def _require_directory(self) -> None:
        if not self.directory.available:
            raise DirectoryUnavailableError()

    def has_pending_write(self, email: str) -> bool:
        return self._in_flight[normalize_email(email)] > 0

    # ---- lookup ----

    async def _find_remote(self, email: str) -> Optional[Document]:
        return await self.directory.find_one(MEMBERS, email=email)

    async def find_member(self, email: str) -> Optional[Member]:
        """Directory first when reachable, local cache otherwise.

        A directory hit is mirrored into the local cache.
        """
        email = normalize_email(email)
        if not email:
            return None

        if self.directory.available:
            try:
                found = await self._find_remote(email)
            except DirectoryUnavailableError as e:
                logger.warning("Directory lookup failed, using local data: %s", e)
            else:
                if found is not None:
                    if self.has_pending_write(email):
                        return self.cache.find_member(email) or found.record
                    self.cache.save_member(found.record)
                    return found.record

        return self.cache.find_member(email)

    # ---- registration ----

    async def register(self, info: MemberCreate) -> Member:
        email = normalize_email(info.email)
        if not email:
            raise MissingFieldError("Email is required")
        nickname = (info.nickname or "").strip() or self.default_nickname

        existing = await self.find_member(email)
        if existing is not None:
            raise DuplicateMemberError()

        member = Member(
            nickname=nickname,
            email=email,
            gender=info.gender,
            age_group=info.age_group,
            serial_number=self.ids.serial_number(),
            points=0,
            is_subscribed=False,
            tarot_uses_count=0,
            tarot_credits=0,
            registered_at=self.clock.now(),
        )

        if self.directory.available:
            try:
                await self.directory.insert(MEMBERS, member)
            except DirectoryUnavailableError as e:
                logger.warning("Directory registration skipped (offline mode): %s", e)

        self.cache.save_member(member)
        self.context.begin(member)
        self.cache.set_session_email(member.email)
        logger.info("Registered member %s (%s)", member.email, member.serial_number)
        return member

    # ---- generic update ----

    async def update_member(self, updated: Member) -> Member:
        """Local cache and session first, then overwrite the remote copy.

        Remote failures are swallowed; the local write is the guarantee.
        """
        self.cache.save_member(updated)
        self.context.refresh(updated)

        if not self.directory.available:
            return updated

        self._in_flight[updated.email] += 1
        try:
            found = await self._find_remote(updated.email)
            if found is not None:
                await self.directory.update_fields(found.ref, updated.to_document())
        except DirectoryUnavailableError as e:
            logger.warning("Directory update for %s skipped: %s", updated.email, e)
        finally:
            self._in_flight[updated.email] -= 1
            if self._in_flight[updated.email] <= 0:
                del self._in_flight[updated.email]
        return updated

    def apply_member_snapshot(self, members: Iterable[Member]) -> None:
        """Advisory refresh from a live subscription.

        Members with a local write still in flight are left alone.
        """
        fresh: List[Member] = [m for m in members if not self.has_pending_write(m.email)]
        self.cache.save_members(fresh)
        for member in fresh:
            self.context.refresh(member)

    # ---- points ----

    async def grant_points(self, member: Member, amount: Optional[int] = None) -> Member:
        amount = self.points_per_grant if amount is None else amount
        return await self.update_member(member.model_copy(update={"points": member.points + amount}))

    async def staff_grant_points(self, passphrase: str) -> Member:
        """In-store grant for the signed-in member, behind the staff passphrase."""
        verify_staff_passphrase(passphrase, self.staff_passphrase)
        member = self.context.require()
        updated = await self.grant_points(member)
        logger.info("Staff granted %s point(s) to %s", self.points_per_grant, member.email)
        return updated

    async def request_points(self, member: Member) -> PointRequest:
        """File a pending request for the operator to decide."""
        self._require_directory()
        request = PointRequest(
            member_email=member.email,
            nickname=member.nickname,
            requested_at=self.clock.now(),
        )
        ref = await self.directory.insert(POINT_REQUESTS, request)
        return request.model_copy(update={"id": str(ref.id)})

    async def _load_request(self, request_id: str) -> Document:
        self._require_directory()
        if not ObjectId.is_valid(request_id):
            raise PointRequestNotFoundError()
        found = await self.directory.get(DocumentRef(POINT_REQUESTS, ObjectId(request_id)))
        if found is None:
            raise PointRequestNotFoundError()
        if not found.record.is_pending:
            raise RequestAlreadyDecidedError()
        return found

    async def approve_point_request(self, request_id: str) -> Tuple[PointRequest, Member]:
        """Grant one point, then mark the request approved.

        Two separate writes: if the second fails the points stay granted and
        the request stays pending.
        """
        found = await self._load_request(request_id)
        request: PointRequest = found.record

        member_doc = await self._find_remote(normalize_email(request.member_email))
        if member_doc is None:
            raise MemberNotFoundError(f"No member registered as {request.member_email}")
        current: Member = member_doc.record
        updated = current.model_copy(update={"points": current.points + APPROVAL_POINTS})

        await self.directory.update_fields(member_doc.ref, {"points": updated.points})
        await self.directory.update_fields(found.ref, {"status": PointRequestStatus.APPROVED.value})

        self._mirror(updated)
        logger.info("Approved point request %s for %s", request_id, request.member_email)
        return request.model_copy(update={"status": PointRequestStatus.APPROVED}), updated

    async def reject_point_request(self, request_id: str) -> PointRequest:
        found = await self._load_request(request_id)
        await self.directory.update_fields(found.ref, {"status": PointRequestStatus.REJECTED.value})
        logger.info("Rejected point request %s", request_id)
        return found.record.model_copy(update={"status": PointRequestStatus.REJECTED})

    # ---- tarot ----

    async def use_tarot(self, member: Member) -> Member:
        """Spend a paid credit if any, else a free use, else refuse."""
        if member.tarot_credits > 0:
            updated = member.model_copy(update={"tarot_credits": member.tarot_credits - 1})
        elif member.tarot_uses_count < self.free_tarot_uses:
            updated = member.model_copy(update={"tarot_uses_count": member.tarot_uses_count + 1})
        else:
            raise TarotExhaustedError()
        return await self.update_member(updated)

    async def issue_tarot_key(self, member: Member) -> TarotKey:
        """Record purchase intent; the key is handed out after payment clears."""
        self._require_directory()
        tarot_key = TarotKey(
            key=self.ids.tarot_key(self.tarot_key_length),
            email=member.email,
            credits=self.tarot_key_credits,
            is_used=False,
            issued_at=self.clock.now(),
        )
        await self.directory.insert(TAROT_KEYS, tarot_key)
        logger.info("Issued tarot key for %s", member.email)
        return tarot_key

    async def redeem_key(self, member: Member, raw_key: str) -> Tuple[Member, TarotKey]:
        """Add the key's credits to ``member`` and mark the key used.

        Not a transaction: two clients redeeming the same key concurrently can
        both be credited.
        """
        key = (raw_key or "").strip().upper()
        if not key:
            raise MissingFieldError("Enter a key")
        self._require_directory()

        found = await self.directory.find_one(TAROT_KEYS, key=key, email=member.email, isUsed=False)
        if found is None:
            raise InvalidKeyError()
        tarot_key: TarotKey = found.record

        updated = member.model_copy(update={
            "tarot_credits": member.tarot_credits + tarot_key.credits,
            "is_subscribed": True,
            "tarot_member_since": member.tarot_member_since or self.clock.now(),
        })
        updated = await self.update_member(updated)
        await self.directory.update_fields(found.ref, {"isUsed": True})

        logger.info("Redeemed key %s for %s (+%s credits)", key, member.email, tarot_key.credits)
        return updated, tarot_key.model_copy(update={"is_used": True})

    async def grant_credits(self, email: str, amount: int) -> Optional[Member]:
        """Operator credit grant; read-modify-write on the remote record.

        Zero is a no-op. Negative amounts correct a balance down to zero.
        """
        if amount == 0:
            return None
        self._require_directory()

        email = normalize_email(email)
        found = await self._find_remote(email)
        if found is None:
            raise MemberNotFoundError(f"No member registered as {email}")
        current: Member = found.record
        credits = max(0, current.tarot_credits + amount)

        await self.directory.update_fields(found.ref, {"tarotCredits": credits})
        updated = current.model_copy(update={"tarot_credits": credits})
        self._mirror(updated)
        logger.info("Granted %s credit(s) to %s", amount, email)
        return updated

    def _mirror(self, member: Member) -> None:
        if self.has_pending_write(member.email):
            return
        self.cache.save_member(member)
        self.context.refresh(member)
