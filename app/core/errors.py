"""Membership error taxonomy.

Services raise these; the HTTP layer turns them into ``HTTPException`` using
the ``status_code`` each class carries.
"""


class MembershipError(Exception):
    """Base class for user-facing membership conditions."""

    status_code: int = 400
    default_message: str = "Membership operation failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# (a) connectivity / permission

class DirectoryUnavailableError(MembershipError):
    status_code = 503
    default_message = "Offline mode: this feature is currently unavailable"


class MalformedDocumentError(DirectoryUnavailableError):
    default_message = "Directory returned a malformed document"


# (b) validation

class MissingFieldError(MembershipError):
    status_code = 422
    default_message = "A required field is empty"


class DuplicateMemberError(MembershipError):
    status_code = 409
    default_message = "This email address is already registered. Please log in."


class MemberNotFoundError(MembershipError):
    status_code = 404
    default_message = "Member not found. Check your email address and nickname."


class NotLoggedInError(MembershipError):
    status_code = 401
    default_message = "Please log in first"


class StaffAuthError(MembershipError):
    status_code = 403
    default_message = "Wrong passphrase"


# (c) resource exhaustion

class TarotExhaustedError(MembershipError):
    status_code = 402
    default_message = "Your free readings are used up. Buy credits to keep reading!"


class DailyQuotaExceededError(MembershipError):
    status_code = 429
    default_message = "Today's recipe posts are full. Please try again tomorrow."


# (d) invalid key / request not found

class InvalidKeyError(MembershipError):
    status_code = 404
    default_message = "Invalid key. Check the key and your registered email address."


class PointRequestNotFoundError(MembershipError):
    status_code = 404
    default_message = "Point request not found"


class RecipeNotFoundError(MembershipError):
    status_code = 404
    default_message = "Recipe not found"


class RequestAlreadyDecidedError(MembershipError):
    status_code = 409
    default_message = "This point request has already been decided"


class SubmissionInProgressError(MembershipError):
    status_code = 409
    default_message = "A recipe is already being posted, please wait"
