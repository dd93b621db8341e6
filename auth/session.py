"""
auth/session.py -- Client-side session lifecycle (the session state machine).

States:
  Anonymous      no session in memory, nothing persisted
  Authenticated  a Session in memory, the same Session persisted, one expiry
                 timer armed

Transitions:
  restore (construction)   Anonymous -> Authenticated if storage holds a
                           complete, decodable, unexpired session; otherwise
                           stays Anonymous and purges any remnants.
  login                    any -> Authenticated (replaces the session whole)
  logout                   any -> Anonymous
  expiry (timer/check)     Authenticated -> Anonymous, with an "expired" notice

Invariants:
  - Memory and storage change together in every transition.
  - Exactly one timer is armed while a session exists, zero otherwise. Arming
    always disarms first.
    A session restored with no event loop running has its timer armed by
    the first check_auth() made inside a loop.
  - Each login takes a fresh attempt number. logout(), expiry and dispose()
    advance the counter too, so a login still waiting out its latency when
    one of those happens is discarded instead of resurrecting the session.

Persisted layout (three independent keys; any one missing means no session):
  auth-user    JSON identity {"id", "email", "name", "role"}
  auth-token   raw opaque token
  auth-expiry  expiry as decimal epoch milliseconds

Nothing here raises into the host: failures become a False return value, a
notice, and a clean Anonymous state.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Callable, Iterable

from auth.credentials import CredentialStore, CredentialValidator, StaticCredentialValidator
from auth.exceptions import CorruptSessionError, InvalidCredentials
from auth.models import ROLE_ADMIN, ROLE_MEMBER, ROLES, Identity, Session
from auth.notify import LogNotifier, Notifier
from auth.timers import LoopScheduler, Scheduler, SchedulerUnavailable, TimerHandle
from auth.tokens import DEFAULT_TTL_MS, TokenIssuer
from core.clock import Clock, now_ms
from core.config import get_settings
from storage.store import KeyValueStore, StorageError

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger("moviesession.session")

USER_KEY = "auth-user"
TOKEN_KEY = "auth-token"
EXPIRY_KEY = "auth-expiry"
SESSION_KEYS = (USER_KEY, TOKEN_KEY, EXPIRY_KEY)

Navigator = Callable[[str], None]


# ---------------------------------------------------------------------------
# Persisted representation
# ---------------------------------------------------------------------------


def encode_session(session: Session) -> dict[str, str]:
    """Return the three persisted string fields for a session, keyed by storage key."""
    identity = session.identity
    user_blob = json.dumps(
        {
            "id": identity.id,
            "email": identity.email,
            "name": identity.display_name,
            "role": identity.role,
        }
    )
    return {USER_KEY: user_blob, TOKEN_KEY: session.token, EXPIRY_KEY: str(session.expires_at)}


def decode_session(user_blob: str, token: str, expiry: str) -> Session:
    """Rebuild a Session from its persisted fields.

    All-or-nothing: any malformed field raises CorruptSessionError and no
    partial Session is returned.
    """
    try:
        data = json.loads(user_blob)
    except ValueError as e:
        raise CorruptSessionError("Persisted identity is not valid JSON") from e
    if not isinstance(data, dict):
        raise CorruptSessionError("Persisted identity is not an object")
    fields = {name: data.get(name) for name in ("id", "email", "name", "role")}
    if not all(isinstance(v, str) and v for v in fields.values()):
        raise CorruptSessionError("Persisted identity is missing fields")
    if fields["role"] not in ROLES:
        raise CorruptSessionError(f"Persisted identity has unknown role {fields['role']!r}")
    if not token:
        raise CorruptSessionError("Persisted token is empty")
    if not expiry.isdecimal():
        raise CorruptSessionError("Persisted expiry is not a decimal timestamp")
    identity = Identity(id=fields["id"], email=fields["email"], display_name=fields["name"], role=fields["role"])
    return Session(identity=identity, token=token, expires_at=int(expiry))


def _no_navigation(route: str) -> None:
    logger.debug("No navigator configured; would redirect to %s", route)


# ---------------------------------------------------------------------------
# Session manager
# ---------------------------------------------------------------------------


class SessionManager:
    """Owns the current session, its persisted copy and its expiry timer.

    Construct once per process and hand the instance to consumers. The
    persisted session (if any) is restored synchronously in __init__, before
    any other call is accepted. Call dispose() at shutdown.

    Usage:
        storage = SqlKeyValueStore(settings.session_db_url)
        manager = SessionManager(storage, navigate=router.push)
        if await manager.login("admin@movie.com", "admin123"):
            manager.is_admin          # True
        manager.check_auth()          # lazy expiry check
        manager.logout()
        manager.dispose()
    """

    def __init__(
        self,
        storage: KeyValueStore,
        validator: CredentialValidator | None = None,
        issuer: TokenIssuer | None = None,
        *,
        scheduler: Scheduler | None = None,
        notifier: Notifier | None = None,
        navigate: Navigator | None = None,
        clock: Clock = now_ms,
        ttl_ms: int = DEFAULT_TTL_MS,
        login_delay: float = 0.0,
        login_route: str = "/login",
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self._storage = storage
        self._validator = validator or StaticCredentialValidator(CredentialStore())
        self._issuer = issuer or TokenIssuer(clock=clock)
        self._scheduler = scheduler or LoopScheduler()
        self._notifier = notifier or LogNotifier()
        self._navigate = navigate or _no_navigation
        self._clock = clock
        self.ttl_ms = ttl_ms
        self.login_delay = login_delay
        self.login_route = login_route

        self._session: Session | None = None
        self._timer: TimerHandle | None = None
        self._attempt = 0
        self._pending_logins = 0
        self._disposed = False

        self._restore()

    @classmethod
    def from_settings(cls, storage: KeyValueStore, settings: Settings | None = None, **kwargs) -> SessionManager:
        """Build a manager with TTL, login latency and login route taken from Settings."""
        settings = settings or get_settings()
        kwargs.setdefault("ttl_ms", settings.session_ttl_ms)
        kwargs.setdefault("login_delay", settings.login_delay_seconds)
        kwargs.setdefault("login_route", settings.login_route)
        return cls(storage, **kwargs)

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def user(self) -> Identity | None:
        return self._session.identity if self._session else None

    @property
    def token(self) -> str | None:
        return self._session.token if self._session else None

    @property
    def expires_at(self) -> int | None:
        return self._session.expires_at if self._session else None

    @property
    def loading(self) -> bool:
        """True while at least one login call is in flight."""
        return self._pending_logins > 0

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_member(self) -> bool:
        return self.role == ROLE_MEMBER

    @property
    def role(self) -> str | None:
        return self._session.identity.role if self._session else None

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    def _restore(self) -> None:
        """Adopt a persisted session if it is complete, decodable and unexpired.

        Every other outcome leaves the manager Anonymous and purges whatever
        partial or stale keys were found. Storage errors are absorbed.
        """
        try:
            values = [self._storage.read(key) for key in SESSION_KEYS]
        except StorageError:
            logger.warning("Could not read persisted session -- starting anonymous", exc_info=True)
            self._purge_storage()
            return

        if all(v is None for v in values):
            return
        if any(v is None for v in values):
            logger.info("Persisted session is incomplete -- discarding")
            self._purge_storage()
            return

        user_blob, token, expiry = values
        try:
            session = decode_session(user_blob, token, expiry)
        except CorruptSessionError as e:
            logger.warning("Persisted session is corrupt (%s) -- discarding", e.message)
            self._purge_storage()
            return

        if self._clock() >= session.expires_at:
            logger.info("Persisted session for user %s has expired -- discarding", session.identity.id)
            self._purge_storage()
            return

        self._session = session
        self._arm_timer()
        logger.info("Restored session for user %s", session.identity.id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def login(self, email: str, secret: str) -> bool:
        """Authenticate and replace the current session. Returns True on success.

        On failure (bad credentials, storage failure, superseded attempt) the
        return value is False. Bad credentials leave the previous state intact.
        """
        if self._disposed:
            logger.warning("login() called after dispose() -- ignored")
            return False

        self._attempt += 1
        attempt = self._attempt
        self._pending_logins += 1
        try:
            # Simulated backend latency; the only suspension point.
            await asyncio.sleep(self.login_delay)

            if attempt != self._attempt:
                logger.info("Login attempt %d superseded -- discarding result", attempt)
                return False

            try:
                identity = self._validator.validate(email, secret)
            except InvalidCredentials as e:
                logger.info("Login attempt %d rejected: %s", attempt, e.kind)
                self._notifier.error(e.message)
                return False

            issued = self._issuer.issue(identity, ttl_ms=self.ttl_ms)
            session = Session(identity=identity, token=issued.token, expires_at=issued.expires_at)

            try:
                self._persist(session)
            except StorageError:
                logger.exception("Could not persist new session -- clearing session state")
                self._end_session()
                self._notifier.error("Login failed: the session could not be saved")
                return False

            self._session = session
            self._arm_timer()
            logger.info("User %s logged in (role=%s)", identity.id, identity.role)
            self._notifier.success(f"Welcome back, {identity.display_name}!")
            return True
        finally:
            self._pending_logins -= 1

    def logout(self) -> None:
        """Clear the session everywhere and send the user to the login route. Never fails."""
        if self._session is not None:
            logger.info("User %s logged out", self._session.identity.id)
        self._end_session()
        self._notifier.info("Logged out successfully")
        self._navigate(self.login_route)

    def check_auth(self) -> bool:
        """Return True if a session exists and has not expired.

        An existing but expired session is ended here (lazy expiry), which
        covers timers that were suspended or missed.

        A fresh session whose timer could not be armed yet (restored with no
        event loop running) gets its timer armed here.
        """
        if self._session is None:
            return False
        if self._clock() >= self._session.expires_at:
            self._expire_session()
            return False
        if self._timer is None:
            self._arm_timer()
        return True

    def has_role(self, roles: Iterable[str]) -> bool:
        """Return True if the current identity's role is one of roles.

        Pure query: no expiry check. Call check_auth() first for freshness.
        """
        if self._session is None:
            return False
        if isinstance(roles, str):
            roles = (roles,)
        return self._session.identity.role in set(roles)

    def dispose(self) -> None:
        """Disarm the timer at shutdown. The persisted session stays for the next run."""
        if self._disposed:
            return
        self._disposed = True
        self._attempt += 1
        self._disarm_timer()
        logger.debug("Session manager disposed")

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def _on_timer(self, token: str) -> None:
        if self._session is None or self._session.token != token:
            # Stale callback; the live timer, if any, belongs to another session.
            return
        self._timer = None
        self._expire_session()

    def _expire_session(self) -> None:
        if self._session is None:
            return
        logger.info("Session for user %s expired", self._session.identity.id)
        self._notifier.warning("Session expired. Please login again.")
        self._end_session()
        self._navigate(self.login_route)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _end_session(self) -> None:
        self._attempt += 1
        self._session = None
        self._disarm_timer()
        self._purge_storage()

    def _persist(self, session: Session) -> None:
        for key, value in encode_session(session).items():
            self._storage.write(key, value)

    def _purge_storage(self) -> None:
        for key in SESSION_KEYS:
            try:
                self._storage.remove(key)
            except StorageError:
                logger.warning("Could not remove persisted key %r", key, exc_info=True)

    def _arm_timer(self) -> None:
        self._disarm_timer()
        if self._session is None or self._disposed:
            return
        delay_ms = self._session.expires_at - self._clock()
        try:
            self._timer = self._scheduler.call_later(max(delay_ms, 0) / 1000, self._on_timer, self._session.token)
        except SchedulerUnavailable:
            # Armed by the next check_auth() made from inside a running loop.
            logger.debug("No event loop to arm the expiry timer on -- deferring")

    def _disarm_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
