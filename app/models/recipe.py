from pydantic import Field

from app.models.base import DirectoryModel


class RecipePost(DirectoryModel):
    """Community recipe submission. ``id`` is a millisecond timestamp."""
    id: int
    author: str
    menu_name: str
    description: str = ""
    image: str = ""
    date: str
    likes: int = Field(default=0, ge=0)


class RecipeCreate(DirectoryModel):
    menu_name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=1000)
    image: str = ""
