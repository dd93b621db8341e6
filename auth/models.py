"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own domain
shape; the credential store, token issuer and session manager do the work.

All entities are frozen: a Session is replaced whole on login and never
partially updated.

Layer rule: no imports from storage/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLES = (ROLE_ADMIN, ROLE_MEMBER)


@dataclass(frozen=True)
class Identity:
    """Who the user is. Safe to persist and display; carries no secret."""

    id: str
    email: str
    display_name: str
    role: str  # "admin" or "member"


@dataclass(frozen=True)
class CredentialRecord:
    """An identity plus the secret that proves it.

    Lives only inside the credential store. secret is excluded from repr so a
    stray log line or traceback never prints it.
    """

    identity: Identity
    secret: str = field(repr=False)  # plaintext or bcrypt hash, per validator


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: int  # epoch milliseconds


@dataclass(frozen=True)
class Session:
    """The current user's authenticated session.

    token is opaque -- a local handle, not a verifiable credential.
    expires_at is absolute epoch milliseconds.
    """

    identity: Identity
    token: str
    expires_at: int
