"""Session context: the explicit holder of "who is signed in".

State machine::

    UNLOADED -> LOADING -> AUTHENTICATED(role)
                        -> ANONYMOUS
    AUTHENTICATED -> CLEARED -> ANONYMOUS      (logout, or a failed re-verify)

The context is created per client (per request on the server side) and
queried through its accessors; nothing here is module-global.
"""

import enum
import logging
from typing import Any, Callable, Protocol

from starlette.responses import Response

from ..config import settings
from ..errors import TokenInvalid
from ..logging_setup import log_event
from .access import Decision, Role, evaluate
from .tokens import Identity, TokenService

logger = logging.getLogger(__name__)

class SessionState(str, enum.Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"
    CLEARED = "cleared"

class CredentialStore(Protocol):
    def get(self) -> str | None: ...
    def set(self, token: str) -> None: ...
    def clear(self) -> None: ...

class MemoryCredentialStore:
    def __init__(self, token: str | None = None):
        self.token = token

    def get(self) -> str | None:
        return self.token

    def set(self, token: str) -> None:
        self.token = token

    def clear(self) -> None:
        self.token = None

def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
        max_age=settings.auth_cookie_max_age,
    )

def delete_auth_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
    )

class CookieCredentialStore:
    """Reads the token from the request cookie; writes are applied to a response later."""

    _UNCHANGED = object()

    def __init__(self, cookies: dict[str, str]):
        self._token = cookies.get(settings.auth_cookie_name) or None
        self._pending: Any = self._UNCHANGED

    def get(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        self._token = token
        self._pending = token

    def clear(self) -> None:
        self._token = None
        self._pending = None

    def apply(self, response: Response) -> Response:
        if self._pending is None:
            delete_auth_cookie(response)
        elif self._pending is not self._UNCHANGED:
            set_auth_cookie(response, self._pending)
        return response

class SessionContext:
    def __init__(
        self,
        store: CredentialStore,
        tokens: TokenService,
        fetch_profile: Callable[[int], Any | None],
    ):
        self._store = store
        self._tokens = tokens
        self._fetch_profile = fetch_profile
        self._state = SessionState.UNLOADED
        self._identity: Identity | None = None
        self._user: Any | None = None
        self._generation = 0
        self._listeners: list[Callable[[SessionState], None]] = []

    def subscribe(self, listener: Callable[[SessionState], None]) -> None:
        """Call listener on every state transition (guards re-evaluate from here)."""
        self._listeners.append(listener)

    @property
    def store(self) -> CredentialStore:
        return self._store

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Identity | None:
        return self._identity if self._state is SessionState.AUTHENTICATED else None

    @property
    def user(self) -> Any | None:
        return self._user if self._state is SessionState.AUTHENTICATED else None

    @property
    def role(self) -> Role | None:
        identity = self.identity
        return identity.role if identity else None

    @property
    def is_authenticated(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    def load(self) -> SessionState:
        """Resolve the stored credential once. Later calls return the current state."""
        if self._state is not SessionState.UNLOADED:
            return self._state

        token = self._store.get()
        if not token:
            self._transition(SessionState.ANONYMOUS)
            return self._state

        self._transition(SessionState.LOADING)
        try:
            identity = self._tokens.verify(token)
        except TokenInvalid as exc:
            log_event("auth_token_rejected", level="warning", reason=type(exc).__name__)
            self._discard()
            return self._state

        try:
            user = self._fetch_profile(identity.user_id)
        except Exception as e:
            logger.error(f"Profile fetch failed for user {identity.user_id} (clearing session): {e}")
            self._discard()
            return self._state

        if user is None:
            log_event("auth_token_rejected", level="warning", reason="profile_unavailable", user_id=identity.user_id)
            self._discard()
            return self._state

        # role comes from the verified token, the profile only confirms the account
        self._identity = identity
        self._user = user
        self._transition(SessionState.AUTHENTICATED)
        return self._state

    def login(self, token: str, user: Any) -> Identity:
        identity = self._tokens.verify(token)
        self._store.set(token)
        self._identity = identity
        self._user = user
        self._generation += 1
        self._transition(SessionState.AUTHENTICATED)
        return identity

    def clear(self) -> SessionState:
        """Drop the credential. Safe to call any number of times."""
        if self._state is SessionState.AUTHENTICATED:
            self._transition(SessionState.CLEARED)
        self._store.clear()
        self._identity = None
        self._user = None
        self._generation += 1
        self._transition(SessionState.ANONYMOUS)
        return self._state

    logout = clear

    def revalidate(self) -> bool:
        """Re-verify the stored token on a protected call; clear the session if it no longer holds."""
        if self._state is not SessionState.AUTHENTICATED:
            return False
        try:
            self._tokens.verify(self._store.get())
        except TokenInvalid as exc:
            log_event("auth_token_rejected", level="info", reason=type(exc).__name__)
            self.clear()
            return False
        return True

    def begin_call(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        """False when the session was cleared or replaced after ``generation`` was taken."""
        return generation == self._generation

    def decide(self, required: Role | str | None = None, auth_route: bool = False) -> Decision:
        if self._state is SessionState.UNLOADED:
            self.load()
        return evaluate(self.identity, required, auth_route)

    def _discard(self) -> None:
        self._store.clear()
        self._identity = None
        self._user = None
        self._transition(SessionState.ANONYMOUS)

    def _transition(self, state: SessionState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
