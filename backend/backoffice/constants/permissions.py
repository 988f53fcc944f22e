"""Central enum-like definitions for the capability and role vocabularies.

Extend cautiously; never rename names silently. Create new ones and retire old
ones through a migration, since role grants reference permissions by name.
"""
from __future__ import annotations
from typing import Dict, FrozenSet, List

OVERVIEW_ACCESS = 'overview-access'
ORDER_MANAGEMENT = 'order-management'
INVENTORY_MANAGEMENT = 'inventory-management'
POS_SALES = 'pos-sales'
WAREHOUSE_MANAGEMENT = 'warehouse-management'
CUSTOMER_MANAGEMENT = 'customer-management'
SUPPLIER_MANAGEMENT = 'supplier-management'
CASH_FLOW_MANAGEMENT = 'cash-flow-management'
REPORTING = 'reporting'
SYSTEM_SETTINGS = 'system-settings'

PERMISSIONS: Dict[str, str] = {
    OVERVIEW_ACCESS: 'Access the overview dashboard',
    ORDER_MANAGEMENT: 'Manage orders',
    INVENTORY_MANAGEMENT: 'Manage goods and inventory',
    POS_SALES: 'Point-of-sale selling',
    WAREHOUSE_MANAGEMENT: 'Manage warehouses',
    CUSTOMER_MANAGEMENT: 'Manage customers',
    SUPPLIER_MANAGEMENT: 'Manage suppliers',
    CASH_FLOW_MANAGEMENT: 'Manage receipts and payments',
    REPORTING: 'View reports',
    SYSTEM_SETTINGS: 'System settings',
}

PERMISSION_NAMES: FrozenSet[str] = frozenset(PERMISSIONS)

STORE_OWNER = 'store-owner'
MANAGER = 'manager'
SALES_STAFF = 'sales-staff'
WAREHOUSE_MANAGER = 'warehouse-manager'
CASHIER = 'cashier'

ROLES: Dict[str, str] = {
    STORE_OWNER: 'Store owner - highest authority',
    MANAGER: 'Manager - main administrative authority',
    SALES_STAFF: 'Sales staff',
    WAREHOUSE_MANAGER: 'Warehouse manager',
    CASHIER: 'Cashier',
}

ROLE_PRESETS: Dict[str, List[str]] = {
    STORE_OWNER: ['*'],
    # Manager: everything except system settings
    MANAGER: [
        OVERVIEW_ACCESS, ORDER_MANAGEMENT, INVENTORY_MANAGEMENT, POS_SALES, WAREHOUSE_MANAGEMENT,
        CUSTOMER_MANAGEMENT, SUPPLIER_MANAGEMENT, CASH_FLOW_MANAGEMENT, REPORTING,
    ],
    SALES_STAFF: [OVERVIEW_ACCESS, ORDER_MANAGEMENT, POS_SALES, CUSTOMER_MANAGEMENT],
    WAREHOUSE_MANAGER: [OVERVIEW_ACCESS, INVENTORY_MANAGEMENT, WAREHOUSE_MANAGEMENT, SUPPLIER_MANAGEMENT, REPORTING],
    CASHIER: [OVERVIEW_ACCESS, POS_SALES, CASH_FLOW_MANAGEMENT],
}


def expand_role_preset(role_name: str) -> FrozenSet[str]:
    codes = ROLE_PRESETS[role_name]
    if '*' in codes:
        return PERMISSION_NAMES
    return frozenset(codes)


# Endpoints reachable without a bearer token
PUBLIC_ENDPOINTS: FrozenSet[str] = frozenset({'health', 'static', 'auth.login'})

# Endpoint -> permissions of which the caller must hold at least one.
# An empty set admits any authenticated caller.
ROUTE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    'auth.me': frozenset(),
    'users.list_users': frozenset({SYSTEM_SETTINGS, INVENTORY_MANAGEMENT}),
    'users.get_user': frozenset({SYSTEM_SETTINGS, INVENTORY_MANAGEMENT}),
    'users.create_user': frozenset({SYSTEM_SETTINGS}),
    'users.update_user': frozenset({SYSTEM_SETTINGS}),
    'users.delete_user': frozenset({SYSTEM_SETTINGS}),
    'users.set_user_roles': frozenset({SYSTEM_SETTINGS}),
    'iam.list_roles': frozenset({SYSTEM_SETTINGS}),
    'iam.list_permissions': frozenset({SYSTEM_SETTINGS}),
    'iam.replace_role_permissions': frozenset({SYSTEM_SETTINGS}),
}
