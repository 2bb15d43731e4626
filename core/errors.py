"""Error taxonomy shared by the moderation engine and the API layer.

Every error carries a short human-readable ``message`` that is safe to show
in the dashboard. Store-specific error text never goes into it.
"""


class ModerationError(Exception):
    """Base class for all moderation errors."""

    status_code = 400
    default_message = "Moderation request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ModerationError):
    """Missing target reference or a value outside a stored vocabulary."""

    status_code = 400
    default_message = "Invalid request"


class Unauthorized(ModerationError):
    """No authenticated actor identity was supplied."""

    status_code = 401
    default_message = "You must be logged in"


class Forbidden(ModerationError):
    """The actor is authenticated but lacks the role the action needs."""

    status_code = 403
    default_message = "Admin access required"


class NotFound(ModerationError):
    status_code = 404
    default_message = "Not found"


class InvalidTransition(ModerationError):
    """Flag is no longer pending and cannot be reviewed again."""

    status_code = 409
    default_message = "Flag has already been reviewed"


class RateLimitExceeded(ModerationError):
    status_code = 429
    default_message = "You've reached the maximum number of reports for today"


class DependencyFailure(ModerationError):
    """The data store or a collaborator failed or was unreachable."""

    status_code = 503
    default_message = "Service temporarily unavailable"
