"""Operator console: live views of the directory plus privileged actions."""
import logging
from typing import List, Optional, Tuple

from app.core.errors import DirectoryUnavailableError
from app.models.member import Member
from app.models.point_request import PointRequest
from app.models.recipe import RecipePost
from app.models.tarot_key import TarotKey
from app.repositories.directory import (
    MEMBERS,
    POINT_REQUESTS,
    RECIPES,
    TAROT_KEYS,
    DirectoryClient,
    Subscription,
)
from app.services.membership_service import MembershipLedger

logger = logging.getLogger(__name__)


class AdminConsole:
    def __init__(self, directory: DirectoryClient, ledger: MembershipLedger):
        self.directory = directory
        self.ledger = ledger
        self.members: List[Member] = []
        self.tarot_keys: List[TarotKey] = []
        self.point_requests: List[PointRequest] = []
        self.recipes: List[RecipePost] = []
        self.loading = True
        self._subscriptions: List[Subscription] = []

    @property
    def started(self) -> bool:
        """True while every live view is still being fed."""
        return bool(self._subscriptions) and all(s.active for s in self._subscriptions)

    def start(self) -> None:
        """Subscribe to all views, replacing any feed that has stopped."""
        if self.started:
            return
        self.stop()
        if not self.directory.available:
            logger.warning("Directory is not available, admin views stay empty")
            self.loading = False
            return
        try:
            self._subscriptions = [
                self.directory.subscribe(MEMBERS, "registeredAt", self._on_members, self._on_members_error),
                self.directory.subscribe(TAROT_KEYS, "issuedAt", self._on_keys, self._log_error),
                self.directory.subscribe(POINT_REQUESTS, "requestedAt", self._on_requests, self._log_error),
                self.directory.subscribe(RECIPES, "id", self._on_recipes, self._log_error),
            ]
        except DirectoryUnavailableError as e:
            logger.warning("Admin subscriptions failed: %s", e)
            self.stop()
            self.loading = False

    def stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []

    async def refresh(self) -> None:
        """One-shot reload of every view."""
        if not self.directory.available:
            self.loading = False
            return
        try:
            self._on_members(await self.directory.find_all(MEMBERS, "registeredAt"))
            self._on_keys(await self.directory.find_all(TAROT_KEYS, "issuedAt"))
            self._on_requests(await self.directory.find_all(POINT_REQUESTS, "requestedAt"))
            self._on_recipes(await self.directory.find_all(RECIPES, "id"))
        except DirectoryUnavailableError as e:
            logger.warning("Admin refresh failed: %s", e)
            self.loading = False

    def _on_members(self, members: List[Member]) -> None:
        self.members = members
        self.loading = False
        self.ledger.apply_member_snapshot(members)

    def _on_members_error(self, error: Exception) -> None:
        logger.error("Members feed error: %s", error)
        self.loading = False

    def _on_keys(self, keys: List[TarotKey]) -> None:
        self.tarot_keys = keys

    def _on_requests(self, requests: List[PointRequest]) -> None:
        # filtered client-side so the directory needs no compound index
        self.point_requests = [r for r in requests if r.is_pending]

    def _on_recipes(self, recipes: List[RecipePost]) -> None:
        self.recipes = recipes

    def _log_error(self, error: Exception) -> None:
        logger.error("Admin feed error: %s", error)

    async def grant_credits(self, email: str, amount: int) -> Optional[Member]:
        return await self.ledger.grant_credits(email, amount)

    async def approve(self, request_id: str) -> Tuple[PointRequest, Member]:
        request, member = await self.ledger.approve_point_request(request_id)
        self._drop_request(request_id)
        return request, member

    async def reject(self, request_id: str) -> PointRequest:
        request = await self.ledger.reject_point_request(request_id)
        self._drop_request(request_id)
        return request

    def _drop_request(self, request_id: str) -> None:
        self.point_requests = [r for r in self.point_requests if r.id != request_id]
