"""Durable key/value store on the client device.

Each entry is a JSON value under a flat string key. The whole store lives in
one JSON file that is rewritten atomically on every write. Without a path the
store is memory-only.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from app.models.base import normalize_email
from app.models.fortune import FortuneResult
from app.models.member import Member
from app.models.recipe import RecipePost

logger = logging.getLogger(__name__)

LOCAL_MEMBERS_KEY = "warakado_local_members"
SESSION_EMAIL_KEY = "warakado_session_email"
LOCAL_RECIPES_KEY = "warakado_local_recipes"
FORTUNE_KEY_PREFIX = "warakado_omikuji_"


class LocalCache:
    """JSON-file key/value store, read-modify-write from one thread only."""

    def __init__(self, path: Optional[str | Path] = None):
        self.path = Path(path) if path else None
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Local cache at %s is unreadable, starting empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Local cache at %s is not a JSON object, starting empty", self.path)
            return {}
        return data

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".cache-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()

    def keys(self) -> List[str]:
        return list(self._data.keys())

    # ---- members ----

    def _read_list(self, key: str, parse: Callable[[dict], Any]) -> list:
        items = []
        for raw in self.get(key, []):
            try:
                items.append(parse(raw))
            except ValueError as e:
                logger.warning("Skipping malformed %s entry: %s", key, e)
        return items

    def get_members(self) -> List[Member]:
        return self._read_list(LOCAL_MEMBERS_KEY, Member.model_validate)

    def find_member(self, email: str) -> Optional[Member]:
        email = normalize_email(email)
        for member in self.get_members():
            if member.email == email:
                return member
        return None

    def save_member(self, member: Member) -> None:
        """Insert or replace the entry with the same email."""
        self.save_members([member])

    def save_members(self, updates: List[Member]) -> None:
        if not updates:
            return
        members = self.get_members()
        index = {m.email: i for i, m in enumerate(members)}
        for member in updates:
            if member.email in index:
                members[index[member.email]] = member
            else:
                index[member.email] = len(members)
                members.append(member)
        self.set(LOCAL_MEMBERS_KEY, [m.to_cache() for m in members])

    # ---- session pointer ----

    def get_session_email(self) -> Optional[str]:
        return self.get(SESSION_EMAIL_KEY)

    def set_session_email(self, email: str) -> None:
        self.set(SESSION_EMAIL_KEY, email)

    def clear_session_email(self) -> None:
        self.remove(SESSION_EMAIL_KEY)

    # ---- recipes ----

    def get_recipes(self) -> List[RecipePost]:
        return self._read_list(LOCAL_RECIPES_KEY, RecipePost.model_validate)

    def prepend_recipe(self, recipe: RecipePost, cap: int) -> None:
        """Store ``recipe`` first, keeping at most ``cap`` entries."""
        recipes = [r for r in self.get_recipes() if r.id != recipe.id]
        recipes = [recipe] + recipes
        self.set(LOCAL_RECIPES_KEY, [r.to_cache() for r in recipes[:cap]])

    def replace_recipe(self, recipe: RecipePost) -> bool:
        """Overwrite the stored copy with the same id, if there is one."""
        recipes = self.get_recipes()
        for i, stored in enumerate(recipes):
            if stored.id == recipe.id:
                recipes[i] = recipe
                self.set(LOCAL_RECIPES_KEY, [r.to_cache() for r in recipes])
                return True
        return False

    # ---- fortune ----

    def get_fortune(self, email: str) -> Optional[FortuneResult]:
        raw = self.get(FORTUNE_KEY_PREFIX + normalize_email(email))
        if raw is None:
            return None
        try:
            return FortuneResult.model_validate(raw)
        except ValueError as e:
            logger.warning("Ignoring malformed fortune entry for %s: %s", email, e)
            return None

    def save_fortune(self, email: str, result: FortuneResult) -> None:
        self.set(FORTUNE_KEY_PREFIX + normalize_email(email), result.to_cache())
