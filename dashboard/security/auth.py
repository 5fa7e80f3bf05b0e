from datetime import datetime, timezone as dt_timezone
from typing import Callable

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..errors import AuthenticationFailure, AuthorizationDenied
from ..logging_setup import log_event
from ..models import User
from .access import Role
from .session import CookieCredentialStore, SessionContext
from .tokens import Identity, TokenService, get_token_service

def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8')[:72], hashed_password.encode('utf-8'))
    except ValueError:
        return False

def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8')[:72], bcrypt.gensalt()).decode('utf-8')

def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

def authenticate(db: Session, email: str, password: str) -> User:
    """Return the user for valid credentials or raise AuthenticationFailure."""
    user = find_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise AuthenticationFailure("Invalid email or password")
    if not user.is_active:
        raise AuthenticationFailure("Account is inactive or pending approval")
    return user

def issue_session(db: Session, user: User, tokens: TokenService) -> str:
    token = tokens.issue(user)
    user.last_login = datetime.now(dt_timezone.utc)
    db.commit()
    return token

def read_token(request: Request) -> str | None:
    # 1. Cookie
    token = request.cookies.get(settings.auth_cookie_name)

    # 2. Authorization header (Bearer) if cookie not present
    if not token:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            token = auth_header.split("Bearer ", 1)[1].strip()
    return token or None

def get_identity(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Identity | None:
    """Verified identity for this request. A present-but-bad token raises TokenInvalid."""
    token = read_token(request)
    if not token:
        return None
    return tokens.verify(token)

def get_current_user(
    identity: Identity | None = Depends(get_identity),
    db: Session = Depends(get_db),
) -> User | None:
    if identity is None:
        return None
    user = db.get(User, identity.user_id)
    if not user or not user.is_active:
        return None
    return user

def require_user(user: User | None = Depends(get_current_user)) -> User:
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

def require_role(required: Role | str) -> Callable[..., User]:
    """Dependency factory: the verified token's role must satisfy ``required``."""
    required = Role.parse(required)

    def _dependency(
        request: Request,
        user: User = Depends(require_user),
        identity: Identity | None = Depends(get_identity),
    ) -> User:
        if identity is None or not identity.role.satisfies(required):
            actual = identity.role.value if identity else None
            log_event("access_denied", level="warning", user_id=user.id, required=required.value, actual=actual, path=request.url.path)
            raise AuthorizationDenied(required.value, actual)
        return user

    return _dependency

require_admin = require_role(Role.ADMIN)
require_editor = require_role(Role.EDITOR)
require_viewer = require_role(Role.VIEWER)

def get_session_context(
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> SessionContext:
    def fetch_profile(user_id: int) -> User | None:
        user = db.get(User, user_id)
        if not user or not user.is_active:
            return None
        return user

    context = SessionContext(CookieCredentialStore(request.cookies), tokens, fetch_profile)
    context.load()
    return context
