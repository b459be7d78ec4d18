"""
Domain errors raised by the ShareBook services.

Each carries a user-facing message; ``main.py`` maps them onto HTTP status
codes.
"""


class DonationError(Exception):
    """Base class for recoverable, user-visible service errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(DonationError):
    pass


class Conflict(DonationError):
    pass


class InvalidState(DonationError):
    pass


class Forbidden(DonationError):
    pass


class Unauthorized(DonationError):
    pass
