"""Unit tests for auth/tokens.py -- opaque token issuance."""

import pytest

from auth.models import Identity
from auth.tokens import DEFAULT_TTL_MS, TokenIssuer

_IDENTITY = Identity(id="1", email="admin@movie.com", display_name="Bashar", role="admin")


def _fixed_clock():
    return 1_000_000


def test_default_ttl_is_one_hour():
    assert DEFAULT_TTL_MS == 3_600_000
    issued = TokenIssuer(clock=_fixed_clock).issue(_IDENTITY)
    assert issued.expires_at == 1_000_000 + 3_600_000


def test_ttl_override():
    issued = TokenIssuer(clock=_fixed_clock).issue(_IDENTITY, ttl_ms=250)
    assert issued.expires_at == 1_000_250


def test_token_embeds_identity_and_issue_time():
    issued = TokenIssuer(clock=_fixed_clock).issue(_IDENTITY)
    assert issued.token.startswith("sess_1_1000000_")


def test_tokens_are_unique_at_same_instant():
    issuer = TokenIssuer(clock=_fixed_clock)
    tokens = {issuer.issue(_IDENTITY).token for _ in range(200)}
    assert len(tokens) == 200


@pytest.mark.parametrize("ttl", [0, -1])
def test_non_positive_ttl_rejected(ttl):
    with pytest.raises(ValueError):
        TokenIssuer(clock=_fixed_clock).issue(_IDENTITY, ttl_ms=ttl)
    with pytest.raises(ValueError):
        TokenIssuer(default_ttl_ms=ttl)
