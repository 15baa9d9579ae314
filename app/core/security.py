import secrets

from app.core.config import settings
from app.core.errors import StaffAuthError


def verify_staff_passphrase(passphrase: str | None, expected: str | None = None) -> None:
    """Shared static passphrase gate for staff and operator actions."""
    expected = settings.STAFF_PASSPHRASE if expected is None else expected
    if not passphrase or not secrets.compare_digest(passphrase.encode(), expected.encode()):
        raise StaffAuthError()
