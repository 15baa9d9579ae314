import random
from typing import NamedTuple, Optional

from app.db.local_cache import LocalCache
from app.models.fortune import FortuneResult
from app.models.member import Member
from app.services.quota_service import BusinessClock


class FortuneTier(NamedTuple):
    threshold: float  # cumulative probability upper bound
    result: str
    benefit: str


FORTUNE_TIERS = (
    FortuneTier(0.10, "excellent", "100 yen off coupon today"),
    FortuneTier(0.25, "good", "50 yen off coupon today"),
    FortuneTier(0.45, "fair", "30 yen off coupon today"),
    FortuneTier(0.80, "modest", "10 yen off coupon today"),
    FortuneTier(1.00, "miss", "No luck this time! Draw again tomorrow"),
)


def pick_tier(value: float) -> FortuneTier:
    """Map a uniform value in [0, 1) onto the cumulative tier table."""
    for tier in FORTUNE_TIERS:
        if value < tier.threshold:
            return tier
    return FORTUNE_TIERS[-1]


class FortuneTeller:
    """One fortune per member per business day, kept in the local cache."""

    def __init__(self, cache: LocalCache, clock: BusinessClock, rng: Optional[random.Random] = None):
        self.cache = cache
        self.clock = clock
        self.rng = rng or random.Random()

    def today(self, member: Member) -> Optional[FortuneResult]:
        stored = self.cache.get_fortune(member.email)
        if stored is not None and stored.date == self.clock.today_key():
            return stored
        return None

    def draw(self, member: Member) -> FortuneResult:
        """Return today's stored result, or draw and store a new one."""
        existing = self.today(member)
        if existing is not None:
            return existing

        tier = pick_tier(self.rng.random())
        result = FortuneResult(date=self.clock.today_key(), result=tier.result, benefit=tier.benefit)
        self.cache.save_fortune(member.email, result)
        return result
