"""
Failure kinds raised by the portal core.
Each carries a short human-readable message safe to show to end users.
"""


class PortalError(Exception):
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotFound(PortalError):
    default_message = "Not found"


class DuplicateKey(PortalError):
    default_message = "Already exists"


class InvalidCredentials(PortalError):
    default_message = "Invalid email or password"


class AccountBlocked(PortalError):
    default_message = "This account is blocked. Contact the institute."


class Unauthorized(PortalError):
    default_message = "You are not allowed to do this"


class NoSession(PortalError):
    default_message = "Please sign in"


class StaleSession(NoSession):
    default_message = "Your session has expired, please sign in again"


class InvalidField(PortalError):
    default_message = "Invalid data"


class InvalidOperation(PortalError):
    default_message = "Operation not allowed"
