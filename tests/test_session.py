from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from dashboard.security.access import ADMIN_HOME, LOGIN_PATH, Outcome, Role
from dashboard.security.session import MemoryCredentialStore, SessionContext, SessionState
from dashboard.security.tokens import TokenService

SECRET = "session-test-secret"

@pytest.fixture
def tokens():
    return TokenService(SECRET, timedelta(hours=1))

@pytest.fixture
def admin():
    return SimpleNamespace(id=1, role="admin", name="Admin User")

def make_context(tokens, token=None, profiles=None):
    profiles = profiles if profiles is not None else {}
    store = MemoryCredentialStore(token)
    return SessionContext(store, tokens, profiles.get), store

def test_no_credential_loads_as_anonymous(tokens):
    context, _ = make_context(tokens)
    assert context.state is SessionState.UNLOADED
    assert context.load() is SessionState.ANONYMOUS
    assert context.identity is None
    assert context.decide(Role.VIEWER).location == LOGIN_PATH

def test_valid_credential_loads_as_authenticated(tokens, admin):
    seen = []
    context, _ = make_context(tokens, tokens.issue(admin), {1: admin})
    context.subscribe(seen.append)

    context.load()

    assert seen == [SessionState.LOADING, SessionState.AUTHENTICATED]
    assert context.is_authenticated
    assert context.role is Role.ADMIN
    assert context.user is admin
    assert context.decide(Role.ADMIN).allowed

def test_load_runs_once(tokens, admin):
    calls = []

    def fetch(user_id):
        calls.append(user_id)
        return admin

    context = SessionContext(MemoryCredentialStore(tokens.issue(admin)), tokens, fetch)
    context.load()
    context.load()
    assert calls == [1]

def test_expired_credential_is_discarded(admin):
    stale = TokenService(SECRET, timedelta(minutes=5), clock=lambda: datetime.now(timezone.utc) - timedelta(hours=1))
    context, store = make_context(TokenService(SECRET, timedelta(hours=1)), stale.issue(admin), {1: admin})

    assert context.load() is SessionState.ANONYMOUS
    assert store.get() is None

def test_garbage_credential_is_discarded(tokens):
    context, store = make_context(tokens, "garbage")
    assert context.load() is SessionState.ANONYMOUS
    assert store.get() is None

def test_missing_profile_is_discarded(tokens, admin):
    context, store = make_context(tokens, tokens.issue(admin), {})
    assert context.load() is SessionState.ANONYMOUS
    assert store.get() is None

def test_profile_fetch_error_is_discarded(tokens, admin):
    def broken(user_id):
        raise RuntimeError("database unavailable")

    store = MemoryCredentialStore(tokens.issue(admin))
    context = SessionContext(store, tokens, broken)
    assert context.load() is SessionState.ANONYMOUS
    assert store.get() is None

def test_role_comes_from_token_not_profile(tokens):
    token = tokens.issue(SimpleNamespace(id=3, role="viewer"))
    promoted = SimpleNamespace(id=3, role="admin")
    context, _ = make_context(tokens, token, {3: promoted})
    context.load()
    assert context.role is Role.VIEWER

def test_clear_walks_through_cleared_to_anonymous(tokens, admin):
    seen = []
    context, store = make_context(tokens, tokens.issue(admin), {1: admin})
    context.load()
    context.subscribe(seen.append)

    context.clear()

    assert seen == [SessionState.CLEARED, SessionState.ANONYMOUS]
    assert context.state is SessionState.ANONYMOUS
    assert store.get() is None
    assert context.identity is None and context.user is None

def test_double_clear_is_harmless(tokens, admin):
    context, _ = make_context(tokens, tokens.issue(admin), {1: admin})
    context.load()
    context.logout()
    assert context.clear() is SessionState.ANONYMOUS
    assert context.decide(Role.VIEWER).outcome is Outcome.REDIRECT_LOGIN

def test_login_stores_credential(tokens, admin):
    context, store = make_context(tokens)
    context.load()
    token = tokens.issue(admin)

    identity = context.login(token, admin)

    assert identity.user_id == 1
    assert store.get() == token
    assert context.decide(auth_route=True).location == ADMIN_HOME

def test_results_of_calls_straddling_a_clear_are_stale(tokens, admin):
    context, _ = make_context(tokens, tokens.issue(admin), {1: admin})
    context.load()

    generation = context.begin_call()
    assert context.is_current(generation)
    context.clear()
    assert not context.is_current(generation)

def test_revalidate_clears_when_token_no_longer_verifies(tokens, admin):
    context, store = make_context(tokens, tokens.issue(admin), {1: admin})
    context.load()
    assert context.revalidate()

    store.set("tampered")
    assert not context.revalidate()
    assert context.state is SessionState.ANONYMOUS
    assert store.get() is None

def test_revalidate_when_anonymous(tokens):
    context, _ = make_context(tokens)
    context.load()
    assert context.revalidate() is False
