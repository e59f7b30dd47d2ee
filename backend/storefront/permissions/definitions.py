# Overview: All permission definitions and default role grants.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


INVENTORY_PERMISSIONS = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "Browse the catalog and check stock availability",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create, edit and retire products",
        PermissionCategory.INVENTORY,
    ),
]

LEDGER_PERMISSIONS = [
    (
        "VIEW_OWN_TRANSACTIONS",
        "View Own Transactions",
        "List and open transactions created by the caller",
        PermissionCategory.LEDGER,
    ),
    (
        "VIEW_ALL_TRANSACTIONS",
        "View All Transactions",
        "List and open every transaction in the ledger",
        PermissionCategory.LEDGER,
    ),
    (
        "CREATE_ORDER",
        "Place Shop Order",
        "Submit a product order from the shop for review",
        PermissionCategory.LEDGER,
    ),
    (
        "CREATE_SERVICE_REQUEST",
        "Submit Service Request",
        "Submit top-up, bill, wallet and deposit requests for review",
        PermissionCategory.LEDGER,
    ),
    (
        "CREATE_POS_SALE",
        "Ring Up POS Sale",
        "Execute a sale directly at the counter",
        PermissionCategory.LEDGER,
    ),
    (
        "APPROVE_TRANSACTIONS",
        "Approve Transactions",
        "Accept or reject pending transactions",
        PermissionCategory.LEDGER,
    ),
]

CUSTOMER_PERMISSIONS = [
    (
        "MANAGE_CUSTOMERS",
        "Manage Customers",
        "Create, edit and retire customer records",
        PermissionCategory.CUSTOMERS,
    ),
]

FINANCE_PERMISSIONS = [
    (
        "MANAGE_EXPENSES",
        "Manage Expenses",
        "Record and review operating expenses",
        PermissionCategory.FINANCE,
    ),
    (
        "VIEW_REPORTS",
        "View Reports",
        "Profit, activity and dashboard reports",
        PermissionCategory.FINANCE,
    ),
]

USER_PERMISSIONS = [
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create accounts and change review status",
        PermissionCategory.USERS,
    ),
]

SYSTEM_PERMISSIONS = [
    (
        "MANAGE_SETTINGS",
        "Manage Settings",
        "Edit tax rate, profit schedule and display settings",
        PermissionCategory.SYSTEM,
    ),
]

PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + LEDGER_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + FINANCE_PERMISSIONS
    + USER_PERMISSIONS
    + SYSTEM_PERMISSIONS
)

# Permissions a non-admin keeps while their account is not verified
UNVERIFIED_PERMISSIONS = frozenset({"VIEW_PRODUCTS", "VIEW_OWN_TRANSACTIONS"})

DEFAULT_ROLE_PERMISSIONS = {
    "admin": frozenset(perm[0] for perm in PERMISSION_DEFINITIONS),
    "user": frozenset({
        "VIEW_PRODUCTS",
        "VIEW_OWN_TRANSACTIONS",
        "CREATE_ORDER",
        "CREATE_SERVICE_REQUEST",
    }),
    "guest": frozenset({"VIEW_PRODUCTS"}),
}
