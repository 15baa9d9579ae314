"""Community recipe feed: merged remote/local view, submissions and likes."""
import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional

from app.core.config import settings
from app.core.errors import (
    DirectoryUnavailableError,
    RecipeNotFoundError,
    SubmissionInProgressError,
)
from app.db.local_cache import LocalCache
from app.models.member import Member
from app.models.recipe import RecipeCreate, RecipePost
from app.repositories.directory import RECIPES, DirectoryClient, Subscription
from app.services.quota_service import BusinessClock, check_recipe_quota, count_for_day
from app.utils.id_generation import IdGenerator, RandomIdGenerator

logger = logging.getLogger(__name__)


def merge_posts(*sources: Iterable[RecipePost]) -> List[RecipePost]:
    """Deduplicate by id (first source wins) and order newest first."""
    seen: Dict[int, RecipePost] = {}
    for source in sources:
        for post in source:
            seen.setdefault(post.id, post)
    return sorted(seen.values(), key=lambda p: p.id, reverse=True)


class RecipeFeed:
    def __init__(
        self,
        directory: DirectoryClient,
        cache: LocalCache,
        clock: BusinessClock,
        ids: Optional[IdGenerator] = None,
        daily_limit: int = settings.DAILY_RECIPE_LIMIT,
        local_cap: int = settings.LOCAL_RECIPE_CAP,
        max_remote_image_length: int = settings.MAX_REMOTE_IMAGE_LENGTH,
        default_image: str = settings.DEFAULT_RECIPE_IMAGE,
    ):
        self.directory = directory
        self.cache = cache
        self.clock = clock
        self.ids = ids or RandomIdGenerator()
        self.daily_limit = daily_limit
        self.local_cap = local_cap
        self.max_remote_image_length = max_remote_image_length
        self.default_image = default_image

        self.submitting = False
        self.subscription: Optional[Subscription] = None
        # optimistic like increments not yet acknowledged by the directory
        self._pending_likes: Counter = Counter()
        self._posts: List[RecipePost] = merge_posts(self.cache.get_recipes())

    @property
    def posts(self) -> List[RecipePost]:
        return list(self._posts)

    def start(self) -> None:
        """Follow the remote feed when the directory is reachable."""
        if not self.directory.available:
            return
        if self.subscription is not None and self.subscription.active:
            return
        try:
            self.subscription = self.directory.subscribe(
                RECIPES, "id", self.apply_snapshot, on_error=self._on_subscription_error
            )
        except DirectoryUnavailableError as e:
            logger.warning("Recipe feed stays local: %s", e)

    def stop(self) -> None:
        if self.subscription is not None:
            self.subscription.cancel()
            self.subscription = None

    def _on_subscription_error(self, error: Exception) -> None:
        self.subscription = None

    def apply_snapshot(self, remote: List[RecipePost]) -> None:
        """Merge a remote snapshot with local copies.

        Posts with an unacknowledged like keep the higher in-memory count.
        """
        current = {p.id: p for p in self._posts}
        merged = merge_posts(remote, self.cache.get_recipes())
        for i, post in enumerate(merged):
            if self._pending_likes[post.id] > 0 and post.id in current:
                likes = max(post.likes, current[post.id].likes)
                merged[i] = post.model_copy(update={"likes": likes})
        self._posts = merged

    def todays_posts(self) -> List[RecipePost]:
        today = self.clock.today_key()
        return [p for p in self._posts if p.date == today]

    def todays_count(self) -> int:
        return count_for_day(self._posts, self.clock.today_key())

    @property
    def is_post_limit_reached(self) -> bool:
        return self.todays_count() >= self.daily_limit

    async def submit(self, member: Member, form: RecipeCreate) -> RecipePost:
        """Post to the shared pool; one submission at a time."""
        if self.submitting:
            raise SubmissionInProgressError()
        self.submitting = True
        try:
            today = self.clock.today_key()
            check_recipe_quota(self._posts, today, self.daily_limit)

            image = form.image or self.default_image
            post = RecipePost(
                id=self.ids.recipe_id(),
                author=member.nickname,
                menu_name=form.menu_name,
                description=form.description,
                image=image,
                date=today,
                likes=0,
            )

            if self.directory.available:
                if len(image) < self.max_remote_image_length:
                    try:
                        await self.directory.insert(RECIPES, post)
                    except DirectoryUnavailableError as e:
                        logger.warning("Recipe saved locally only: %s", e)
                else:
                    logger.warning("Image still too large for the directory, skipping remote save")

            try:
                self.cache.prepend_recipe(post, self.local_cap)
            except OSError:
                logger.exception("Local cache write failed for recipe %s", post.id)

            self._posts = merge_posts([post], self._posts)
            return post
        finally:
            self.submitting = False

    async def like(self, recipe_id: int) -> RecipePost:
        """Bump the count in memory now, increment remotely in the background."""
        for i, post in enumerate(self._posts):
            if post.id == recipe_id:
                liked = post.model_copy(update={"likes": post.likes + 1})
                self._posts[i] = liked
                break
        else:
            raise RecipeNotFoundError()

        try:
            self.cache.replace_recipe(liked)
        except OSError:
            logger.exception("Local cache write failed for like on recipe %s", recipe_id)

        if not self.directory.available:
            return liked

        self._pending_likes[recipe_id] += 1
        try:
            found = await self.directory.find_one(RECIPES, id=recipe_id)
            if found is not None:
                await self.directory.increment(found.ref, "likes", 1)
        except DirectoryUnavailableError as e:
            logger.warning("Like update failed for recipe %s: %s", recipe_id, e)
        finally:
            self._pending_likes[recipe_id] -= 1
            if self._pending_likes[recipe_id] <= 0:
                del self._pending_likes[recipe_id]
        return liked
