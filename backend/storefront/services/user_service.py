# Overview: User records known to the storefront; role and review status.

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User
from ..validation import ConflictError, NotFoundError, ValidationError
from .permission_service import ROLES, USER_STATUSES, Identity, require_permission


def list_users(actor: Identity | None, status: str | None = None) -> list[User]:
    require_permission(actor, "MANAGE_USERS")
    q = db.session.query(User)
    if status is not None:
        if status not in USER_STATUSES:
            raise ValidationError(f"status must be one of {', '.join(USER_STATUSES)}", field="status")
        q = q.filter(User.status == status)
    return q.order_by(User.id.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found", field="user_id")
    return user


def create_user(
    username: str,
    role: str = "user",
    status: str = "pending_info",
    full_name: str | None = None,
    phone: str | None = None,
) -> User:
    """Unchecked create, used by the CLI and by create_user_as."""
    if not isinstance(username, str) or not username.strip():
        raise ValidationError("username is required", field="username")
    username = username.strip()
    if len(username) > 64:
        raise ValidationError("username exceeds max length 64", field="username")
    if role not in ROLES:
        raise ValidationError(f"role must be one of {', '.join(ROLES)}", field="role")
    if status not in USER_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(USER_STATUSES)}", field="status")

    if db.session.query(User.id).filter_by(username=username).first():
        raise ConflictError("Username already exists", field="username")

    user = User(username=username, role=role, status=status, full_name=full_name, phone=phone)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Username already exists", field="username")
    return user


def create_user_as(actor: Identity | None, payload: dict) -> User:
    require_permission(actor, "MANAGE_USERS")
    payload = payload or {}
    unknown = set(payload) - {"username", "role", "status", "full_name", "phone"}
    if unknown:
        name = sorted(unknown)[0]
        raise ValidationError(f"Field not allowed: {name}", field=name)

    user = create_user(
        payload.get("username"),
        role=payload.get("role", "user"),
        status=payload.get("status", "pending_info"),
        full_name=payload.get("full_name"),
        phone=payload.get("phone"),
    )
    current_app.logger.info("User created id=%s username=%s by user=%s", user.id, user.username, actor.id)
    return user


def set_user_status(actor: Identity | None, user_id: int, status: str) -> User:
    """Review decision from the admin (e.g. pending_review -> verified)."""
    require_permission(actor, "MANAGE_USERS")
    return apply_user_status(user_id, status)


def apply_user_status(user_id: int, status: str) -> User:
    if status not in USER_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(USER_STATUSES)}", field="status")
    user = get_user(user_id)
    if user.status != status:
        user.status = status
        db.session.commit()
        current_app.logger.info("User id=%s status set to %s", user.id, status)
    return user
