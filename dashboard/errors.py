"""Exception taxonomy shared by the auth, schema and seed layers."""


class DashboardError(Exception):
    """Base class for errors raised by the dashboard core."""


class AuthenticationFailure(DashboardError):
    """Wrong email/password, or an account that may not sign in."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)
        self.message = message


InvalidCredentials = AuthenticationFailure


class TokenInvalid(DashboardError):
    """A session token that cannot be trusted. Callers treat it as anonymous."""


class TokenExpired(TokenInvalid):
    pass


class MalformedToken(TokenInvalid):
    pass


ExpiredToken = TokenExpired


class AuthorizationDenied(DashboardError):
    """Authenticated, but the role is below what the resource requires."""

    def __init__(self, required, actual):
        super().__init__(f"Requires {required} role (current: {actual})")
        self.required = required
        self.actual = actual


class ReferentialViolation(DashboardError):
    """A write referenced parent rows that do not exist."""

    def __init__(self, entity: str, ids):
        ids = sorted(ids) if not isinstance(ids, (str, int)) else [ids]
        super().__init__(f"Unknown {entity} id(s): {', '.join(str(i) for i in ids)}")
        self.entity = entity
        self.ids = ids


class SeedStepFailure(DashboardError):
    def __init__(self, step: str, cause: BaseException):
        super().__init__(f"Seed step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause
