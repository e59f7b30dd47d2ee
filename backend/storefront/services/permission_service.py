# Overview: Session/role gate; resolves the acting identity and decides what it may do.

"""
Permission checks for ledger and inventory operations.

The core trusts the identity handed over by the identity provider
({id, role, status}) and only decides capabilities from it.

DESIGN PRINCIPLES:
- Fail closed: deny by default, require an explicit grant
- Check before mutate: services call require_permission before touching rows
- Log denials only
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, g, has_app_context

from ..permissions import DEFAULT_ROLE_PERMISSIONS, UNVERIFIED_PERMISSIONS

ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLE_GUEST = "guest"
ROLES = (ROLE_ADMIN, ROLE_USER, ROLE_GUEST)

STATUS_PENDING_INFO = "pending_info"
STATUS_PENDING_REVIEW = "pending_review"
STATUS_VERIFIED = "verified"
STATUS_REJECTED = "rejected"
USER_STATUSES = (STATUS_PENDING_INFO, STATUS_PENDING_REVIEW, STATUS_VERIFIED, STATUS_REJECTED)


class AuthorizationError(Exception):
    """Raised when the acting identity lacks a required capability."""

    def __init__(self, message: str, permission: str | None = None):
        super().__init__(message)
        self.permission = permission

    def to_dict(self) -> dict:
        body = {"error": "Permission denied", "message": str(self)}
        if self.permission:
            body["required_permission"] = self.permission
        return body


@dataclass(frozen=True)
class Identity:
    """Who is acting: the validated output of the identity provider."""
    id: int
    role: str
    status: str
    username: str | None = None

    @classmethod
    def from_user(cls, user) -> "Identity":
        return cls(id=user.id, role=user.role, status=user.status, username=user.username)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {"id": self.id, "role": self.role, "status": self.status, "username": self.username}


def current_identity() -> Identity | None:
    """Identity established by @require_auth for this request, if any."""
    if not has_app_context():
        return None
    return getattr(g, "identity", None)


def get_permissions(identity: Identity | None) -> frozenset[str]:
    if identity is None:
        return frozenset()
    granted = DEFAULT_ROLE_PERMISSIONS.get(identity.role, frozenset())
    if identity.role != ROLE_ADMIN and identity.status != STATUS_VERIFIED:
        return granted & UNVERIFIED_PERMISSIONS
    return granted


def has_permission(identity: Identity | None, permission_code: str) -> bool:
    return permission_code in get_permissions(identity)


def can_approve_transactions(identity: Identity | None) -> bool:
    return identity is not None and identity.role == ROLE_ADMIN


def can_view_all_transactions(identity: Identity | None) -> bool:
    return has_permission(identity, "VIEW_ALL_TRANSACTIONS")


def require_permission(identity: Identity | None, permission_code: str) -> None:
    """Raise AuthorizationError unless identity holds permission_code."""
    if has_permission(identity, permission_code):
        return

    if identity is None:
        reason = "Authentication required"
    elif identity.role != ROLE_ADMIN and identity.status != STATUS_VERIFIED:
        reason = "Account is not verified"
    else:
        reason = f"Missing permission {permission_code}"

    if has_app_context():
        current_app.logger.warning(
            "Permission denied: user=%s role=%s permission=%s reason=%s",
            identity.id if identity else None,
            identity.role if identity else None,
            permission_code,
            reason,
        )
    raise AuthorizationError(reason, permission=permission_code)


def require_approver(identity: Identity | None) -> None:
    """Gate for status decisions; only the admin role carries APPROVE_TRANSACTIONS."""
    require_permission(identity, "APPROVE_TRANSACTIONS")
