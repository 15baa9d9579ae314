from app.models.base import DirectoryModel


class FortuneResult(DirectoryModel):
    """A member's fortune for one business day."""
    date: str
    result: str
    benefit: str
