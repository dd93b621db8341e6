"""
auth/exceptions.py -- Authentication failure taxonomy.

Every failure carries a stable `kind` string so callers can branch without
matching on message text. Messages are safe to show to the user.
"""


class AuthFailure(Exception):
    kind = "auth_failure"

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)
        self.message = message


class InvalidCredentials(AuthFailure):
    """No credential record matches the submitted (email, secret) pair.

    The message is deliberately the same whichever field was wrong.
    """

    kind = "invalid_credentials"

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class CorruptSessionError(AuthFailure):
    """Persisted session fields are missing or cannot be decoded."""

    kind = "corrupt_session"
