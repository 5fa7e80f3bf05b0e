"""Role hierarchy and the access guard.

``evaluate`` is the single decision point for navigation: given the verified
identity (or None), the role a resource requires and whether the route is an
auth-only route (the login page), it returns what to do. It has no side
effects and may be re-run on every navigation or identity change.
"""

import enum
from dataclasses import dataclass
from typing import Protocol

ADMIN_HOME = "/admin"
CONTENT_FEED = "/dashboard/feed"
LOGIN_PATH = "/auth/login"

class Role(str, enum.Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def satisfies(self, required: "Role | str | None") -> bool:
        """Higher roles satisfy any lower or equal requirement."""
        if required is None:
            return True
        return self.rank >= Role.parse(required).rank

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None

_RANK = {Role.VIEWER: 1, Role.EDITOR: 2, Role.ADMIN: 3}

class Outcome(str, enum.Enum):
    ALLOW = "allow"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_DEFAULT = "redirect_default"

@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    location: str | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOW

class HasRole(Protocol):
    role: Role

ALLOW = Decision(Outcome.ALLOW)

def default_landing(role: "Role | str | None") -> str:
    if role is not None and Role.parse(role) is Role.ADMIN:
        return ADMIN_HOME
    return CONTENT_FEED

def evaluate(identity: HasRole | None, required: "Role | str | None" = None, auth_route: bool = False) -> Decision:
    if identity is None:
        if auth_route:
            return ALLOW
        return Decision(Outcome.REDIRECT_LOGIN, LOGIN_PATH)

    if auth_route:
        # already signed in: the login page has nothing to offer
        return Decision(Outcome.REDIRECT_DEFAULT, default_landing(identity.role))

    if identity.role.satisfies(required):
        return ALLOW
    return Decision(Outcome.REDIRECT_DEFAULT, default_landing(identity.role))
