from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import AuthenticationFailure, TokenInvalid
from ..logging_setup import log_event
from ..models import User
from ..schemas import ChangePasswordIn, LoginIn, LoginOut, RegisterIn, UserOut
from ..security.auth import (
    authenticate, find_user_by_email, get_password_hash,
    issue_session, read_token, require_user, verify_password,
)
from ..security.session import delete_auth_cookie, set_auth_cookie
from ..security.tokens import TokenService, get_token_service

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/login", response_model=LoginOut)
def login(
    payload: LoginIn,
    response: Response,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    try:
        user = authenticate(db, payload.email, payload.password)
    except AuthenticationFailure as e:
        log_event("auth_login_failed", level="warning", email=payload.email, reason=e.message)
        raise

    token = issue_session(db, user, tokens)
    set_auth_cookie(response, token)
    log_event("auth_login_success", user_id=user.id, role=user.role)
    return {"token": token, "user": user}

@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    """Create a pending account. An admin activates it before it can sign in."""
    if find_user_by_email(db, payload.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists."
        )

    user = User(
        name=payload.name.strip(),
        email=payload.email.strip().lower(),
        password_hash=get_password_hash(payload.password),
        role=payload.role,
        status="pending",
        department=payload.department,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

@router.get("/me", response_model=UserOut)
def me(user: User = Depends(require_user)):
    return user

@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    tokens: TokenService = Depends(get_token_service),
) -> dict[str, str]:
    delete_auth_cookie(response)
    token = read_token(request)
    if token:
        try:
            log_event("auth_logout", user_id=tokens.verify(token).user_id)
        except TokenInvalid:
            # nothing to sign out of; the cookie is gone either way
            log_event("auth_logout", user_id=None)
    return {"message": "Logged out successfully"}

@router.post("/change-password")
def change_password(
    payload: ChangePasswordIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
) -> dict[str, str]:
    if not verify_password(payload.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    user.password_hash = get_password_hash(payload.new_password)
    db.commit()
    return {"message": "Password changed successfully"}
