"""Business-day clock and the shared daily recipe quota."""
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional
from zoneinfo import ZoneInfo

from app.core.errors import DailyQuotaExceededError
from app.models.recipe import RecipePost

DAY_KEY_FORMAT = "%Y/%m/%d"


class BusinessClock:
    """Wall clock pinned to the business timezone.

    All clients reset their daily quotas at the same instant, whatever the
    device timezone is. ``now`` can be injected to pin arbitrary instants.
    """

    def __init__(self, timezone_name: str = "Asia/Tokyo",
                 now: Optional[Callable[[], datetime]] = None):
        self.tz = ZoneInfo(timezone_name)
        self._now = now or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        current = self._now()
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        return current

    def today_key(self) -> str:
        return self.now().astimezone(self.tz).strftime(DAY_KEY_FORMAT)


def count_for_day(posts: Iterable[RecipePost], day_key: str) -> int:
    return sum(1 for post in posts if post.date == day_key)


def remaining_posts(posts: Iterable[RecipePost], day_key: str, limit: int) -> int:
    return max(0, limit - count_for_day(posts, day_key))


def check_recipe_quota(posts: Iterable[RecipePost], day_key: str, limit: int) -> None:
    """Raise once the global pool for ``day_key`` is full."""
    if count_for_day(posts, day_key) >= limit:
        raise DailyQuotaExceededError()
