from typing import List

from app.models.base import DirectoryModel
from app.models.recipe import RecipePost


class RecipeFeedResponse(DirectoryModel):
    """Today's posts plus the state of the shared daily pool."""
    date: str
    posts: List[RecipePost]
    today_count: int
    daily_limit: int
    limit_reached: bool
