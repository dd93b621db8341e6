"""
auth/tokens.py -- Opaque session token issuance.

Security design decisions:
  The token is a locally generated opaque handle:
      sess_<identity id>_<issue time ms>_<random>
  The random part comes from secrets.token_urlsafe(), so tokens are unique
  with overwhelming probability across issuances. It carries no signature and
  proves nothing -- callers must never treat it as a security boundary. A
  server-issued signed token can replace TokenIssuer without touching the
  session manager.

  Expiry is absolute epoch milliseconds: issue time + TTL. A TTL of zero or
  less is rejected so a session is never born expired.

Layer rule: no imports from storage/. Import from core/ is allowed -- core/ is
the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import secrets

from auth.models import Identity, IssuedToken
from core.clock import Clock, now_ms

DEFAULT_TTL_MS = 60 * 60 * 1000  # 1 hour


class TokenIssuer:
    """Issues (token, expires_at) pairs for validated identities.

    Usage:
        issuer = TokenIssuer()
        issued = issuer.issue(identity)               # 1 hour
        issued = issuer.issue(identity, ttl_ms=5000)  # 5 seconds
    """

    def __init__(self, clock: Clock = now_ms, default_ttl_ms: int = DEFAULT_TTL_MS) -> None:
        if default_ttl_ms <= 0:
            raise ValueError("default_ttl_ms must be positive")
        self._clock = clock
        self.default_ttl_ms = default_ttl_ms

    def issue(self, identity: Identity, ttl_ms: int | None = None) -> IssuedToken:
        """Return a fresh opaque token and its absolute expiry.

        Args:
            identity: The validated identity the token is issued for.
            ttl_ms:   Lifetime in milliseconds. If None, uses default_ttl_ms.
        """
        duration = self.default_ttl_ms if ttl_ms is None else ttl_ms
        if duration <= 0:
            raise ValueError("ttl_ms must be positive")
        issued_at = self._clock()
        token = f"sess_{identity.id}_{issued_at}_{secrets.token_urlsafe(12)}"
        return IssuedToken(token=token, expires_at=issued_at + duration)
