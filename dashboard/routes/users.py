import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import Company, User
from ..schemas import (
    ResetPasswordIn, ResetPasswordOut, UserCreate, UserOut, UserStats, UserUpdate,
)
from ..security.access import Role
from ..security.auth import find_user_by_email, get_password_hash, require_admin
from ..errors import ReferentialViolation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

def _generate_password() -> str:
    return secrets.token_urlsafe(9)

def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

def _check_company(db: Session, company_id: int | None) -> None:
    if company_id is not None and db.get(Company, company_id) is None:
        raise ReferentialViolation("company", [company_id])

@router.get("", response_model=list[UserOut])
def list_users(
    role: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if status_filter:
        query = query.filter(User.status == status_filter)
    return query.order_by(User.name).all()

@router.get("/stats", response_model=UserStats)
def user_stats(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    by_status = dict(db.query(User.status, func.count(User.id)).group_by(User.status).all())
    by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    return UserStats(
        total_users=sum(by_status.values()),
        active_users=by_status.get("active", 0),
        pending_users=by_status.get("pending", 0),
        inactive_users=by_status.get("inactive", 0),
        admin_users=by_role.get("admin", 0),
        editor_users=by_role.get("editor", 0),
        viewer_users=by_role.get("viewer", 0),
    )

@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return _get_user_or_404(db, user_id)

@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    if find_user_by_email(db, payload.email):
        raise HTTPException(status_code=409, detail="A user with this email already exists.")
    _check_company(db, payload.company_id)

    user = User(
        name=payload.name.strip(),
        email=payload.email.strip().lower(),
        password_hash=get_password_hash(payload.password or _generate_password()),
        role=payload.role,
        status=payload.status,
        department=payload.department,
        company_id=payload.company_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} created by admin {admin.id}")
    return user

@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = _get_user_or_404(db, user_id)
    changes = payload.model_dump(exclude_unset=True)
    # explicit nulls only clear the optional columns
    changes = {k: v for k, v in changes.items() if v is not None or k in ("department", "company_id")}

    if user.id == admin.id and "role" in changes and not Role.parse(changes["role"]).satisfies(Role.ADMIN):
        raise HTTPException(status_code=400, detail="You cannot downgrade your own admin role")
    if user.id == admin.id and changes.get("status", "active") != "active":
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    if "email" in changes:
        other = find_user_by_email(db, changes["email"])
        if other and other.id != user.id:
            raise HTTPException(status_code=409, detail="A user with this email already exists.")
        changes["email"] = changes["email"].strip().lower()
    if "company_id" in changes:
        _check_company(db, changes["company_id"])

    for field, value in changes.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user

@router.delete("/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    """Soft delete: the account is marked inactive and can no longer sign in."""
    user = _get_user_or_404(db, user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    user.status = "inactive"
    db.commit()
    logger.info(f"User {user.id} deactivated by admin {admin.id}")
    return {"message": "User deleted successfully"}

@router.post("/{user_id}/reset-password", response_model=ResetPasswordOut)
def reset_password(
    user_id: int,
    payload: ResetPasswordIn | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = _get_user_or_404(db, user_id)
    chosen = payload.password if payload else None
    new_password = chosen or _generate_password()
    user.password_hash = get_password_hash(new_password)
    db.commit()
    return ResetPasswordOut(
        message="Password reset successfully",
        password=None if chosen else new_password,
    )
