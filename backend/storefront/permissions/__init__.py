# Overview: Permission system package.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    INVENTORY_PERMISSIONS,
    LEDGER_PERMISSIONS,
    CUSTOMER_PERMISSIONS,
    FINANCE_PERMISSIONS,
    USER_PERMISSIONS,
    SYSTEM_PERMISSIONS,
    UNVERIFIED_PERMISSIONS,
    DEFAULT_ROLE_PERMISSIONS,
)
from .helpers import (
    get_all_permission_codes,
    get_permission_definition,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "INVENTORY_PERMISSIONS",
    "LEDGER_PERMISSIONS",
    "CUSTOMER_PERMISSIONS",
    "FINANCE_PERMISSIONS",
    "USER_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "UNVERIFIED_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permission_definition",
    "validate_permission_code",
]
