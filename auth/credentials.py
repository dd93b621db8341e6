"""
auth/credentials.py -- Credential store and credential validators.

Security design decisions:
  Store: a fixed, ordered, in-memory registry of CredentialRecords. Several
       records may share an email (different secrets map to different
       identities), so lookup is always on the (email, secret) pair, never on
       email alone. Definition order decides ties.

  StaticCredentialValidator: exact, case-sensitive comparison against
       plaintext secrets via hmac.compare_digest (constant time). This is the
       stand-in used by the default credential set.

  BcryptCredentialValidator: the same contract over records whose secret is
       a bcrypt hash. The _DUMMY_HASH constant equalizes timing when no record
       carries the submitted email so response time does not reveal whether
       an email exists.

  Both raise InvalidCredentials on failure and never say which field was
  wrong. The session manager depends only on the CredentialValidator
  protocol, so either can be swapped in.

Layer rule: no imports from storage/ or core/.
"""

from __future__ import annotations

import hmac
from typing import Iterable, Iterator, Protocol

import bcrypt

from auth.exceptions import InvalidCredentials
from auth.models import ROLES, CredentialRecord, Identity

# ---------------------------------------------------------------------------
# Default credential set
# ---------------------------------------------------------------------------

DEFAULT_RECORDS: tuple[CredentialRecord, ...] = (
    CredentialRecord(
        identity=Identity(id="1", email="admin@movie.com", display_name="Bashar", role="admin"),
        secret="admin123",
    ),
    CredentialRecord(
        identity=Identity(id="2", email="member@movie.com", display_name="Bashar", role="member"),
        secret="member123",
    ),
    CredentialRecord(
        identity=Identity(id="3", email="admin@movie.com", display_name="Nima", role="admin"),
        secret="admin1234",
    ),
)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class CredentialStore:
    """Immutable, ordered registry of known identities.

    Usage:
        store = CredentialStore()                  # default credential set
        store = CredentialStore([record, ...])     # custom set
        for record in store.find_by_email("admin@movie.com"): ...
    """

    def __init__(self, records: Iterable[CredentialRecord] = DEFAULT_RECORDS) -> None:
        self._records: tuple[CredentialRecord, ...] = tuple(records)
        for record in self._records:
            if record.identity.role not in ROLES:
                raise ValueError(f"Unknown role {record.identity.role!r} for identity {record.identity.id!r}")

    def __iter__(self) -> Iterator[CredentialRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def find_by_email(self, email: str) -> list[CredentialRecord]:
        """Return every record with this exact email, in definition order."""
        return [r for r in self._records if r.identity.email == email]


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


class CredentialValidator(Protocol):
    def validate(self, email: str, secret: str) -> Identity:
        """Return the first matching Identity or raise InvalidCredentials."""
        ...


class StaticCredentialValidator:
    """Exact-match validator over plaintext secrets."""

    def __init__(self, store: CredentialStore) -> None:
        self.store = store

    def validate(self, email: str, secret: str) -> Identity:
        for record in self.store.find_by_email(email):
            if hmac.compare_digest(record.secret.encode("utf-8"), secret.encode("utf-8")):
                return record.identity
        raise InvalidCredentials()


def hash_secret(plain: str, rounds: int = 12) -> str:
    """Return a bcrypt hash of the given plaintext secret.

    Secrets longer than 72 bytes are truncated by bcrypt (a known bcrypt
    limitation); the default credential set is far below that.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_secret(plain: str, hashed: str) -> bool:
    """Return True if the plaintext secret matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store
        return False


class BcryptCredentialValidator:
    """Validator over records whose secret field holds a bcrypt hash.

    Build the store with hashed secrets:
        store = CredentialStore(
            CredentialRecord(r.identity, hash_secret(r.secret)) for r in DEFAULT_RECORDS
        )
        validator = BcryptCredentialValidator(store)
    """

    _dummy_hash: str | None = None

    def __init__(self, store: CredentialStore) -> None:
        self.store = store

    @classmethod
    def _timing_dummy(cls) -> str:
        # Computed lazily once so importing this module stays cheap.
        if cls._dummy_hash is None:
            cls._dummy_hash = hash_secret("moviesession_timing_dummy")
        return cls._dummy_hash

    def validate(self, email: str, secret: str) -> Identity:
        candidates = self.store.find_by_email(email)
        if not candidates:
            # Equalize timing -- do NOT return early before running bcrypt
            verify_secret(secret, self._timing_dummy())
            raise InvalidCredentials()
        for record in candidates:
            if verify_secret(secret, record.secret):
                return record.identity
        raise InvalidCredentials()
