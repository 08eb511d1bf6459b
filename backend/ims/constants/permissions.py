"""Central role/permission definitions to avoid typos in permission strings.

Extend cautiously; never rename tokens silently. The string values are what
travels inside session tokens and JSON payloads.
"""
from __future__ import annotations
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Tuple, Union


class Role(str, Enum):
    ADMIN = 'admin'
    MANAGER = 'manager'
    EMPLOYEE = 'employee'
    VIEWER = 'viewer'


class Permission(str, Enum):
    # Products
    PRODUCTS_VIEW = 'products:view'
    PRODUCTS_CREATE = 'products:create'
    PRODUCTS_UPDATE = 'products:update'
    PRODUCTS_DELETE = 'products:delete'
    # Inventory
    INVENTORY_VIEW = 'inventory:view'
    INVENTORY_UPDATE = 'inventory:update'
    INVENTORY_TRANSFER = 'inventory:transfer'
    INVENTORY_ADJUST = 'inventory:adjust'
    # Sales
    SALES_VIEW = 'sales:view'
    SALES_CREATE = 'sales:create'
    SALES_UPDATE = 'sales:update'
    SALES_DELETE = 'sales:delete'
    # Customers
    CUSTOMERS_VIEW = 'customers:view'
    CUSTOMERS_CREATE = 'customers:create'
    CUSTOMERS_UPDATE = 'customers:update'
    CUSTOMERS_DELETE = 'customers:delete'
    # Reports
    REPORTS_VIEW = 'reports:view'
    REPORTS_EXPORT = 'reports:export'
    REPORTS_ADVANCED = 'reports:advanced'
    # Admin
    USERS_MANAGE = 'users:manage'
    SETTINGS_MANAGE = 'settings:manage'
    SYSTEM_ADMIN = 'system:admin'

    @property
    def resource(self) -> str:
        return self.value.split(':', 1)[0]

    @property
    def action(self) -> str:
        return self.value.split(':', 1)[1]


RoleLike = Union[Role, str]
PermissionLike = Union[Permission, str]

# Declaration order of the enum is the canonical order of the universe.
ALL_PERMISSIONS: Tuple[Permission, ...] = tuple(Permission)

_P = Permission

ROLE_PERMISSIONS: Mapping[Role, Tuple[Permission, ...]] = MappingProxyType({
    # admin always tracks the full universe
    Role.ADMIN: ALL_PERMISSIONS,
    Role.MANAGER: (
        _P.PRODUCTS_VIEW, _P.PRODUCTS_CREATE, _P.PRODUCTS_UPDATE,
        _P.INVENTORY_VIEW, _P.INVENTORY_UPDATE, _P.INVENTORY_TRANSFER, _P.INVENTORY_ADJUST,
        _P.SALES_VIEW, _P.SALES_CREATE, _P.SALES_UPDATE,
        _P.CUSTOMERS_VIEW, _P.CUSTOMERS_CREATE, _P.CUSTOMERS_UPDATE,
        _P.REPORTS_VIEW, _P.REPORTS_EXPORT,
    ),
    Role.EMPLOYEE: (
        _P.PRODUCTS_VIEW,
        _P.INVENTORY_VIEW, _P.INVENTORY_UPDATE,
        _P.SALES_VIEW, _P.SALES_CREATE,
        _P.CUSTOMERS_VIEW, _P.CUSTOMERS_CREATE,
        _P.REPORTS_VIEW,
    ),
    Role.VIEWER: (
        _P.PRODUCTS_VIEW,
        _P.INVENTORY_VIEW,
        _P.SALES_VIEW,
        _P.CUSTOMERS_VIEW,
        _P.REPORTS_VIEW,
    ),
})

del _P


def to_role(role: RoleLike) -> Role:
    """Coerce a role value (enum member or its string form). Raises ValueError if unknown."""
    if isinstance(role, Role):
        return role
    return Role(role)


def to_permission(permission: PermissionLike) -> Permission:
    """Coerce a permission token. Raises ValueError for tokens outside the universe."""
    if isinstance(permission, Permission):
        return permission
    return Permission(permission)


def permissions_for(role: RoleLike) -> List[Permission]:
    """Ordered permission list granted to ``role`` (a fresh copy)."""
    return list(ROLE_PERMISSIONS[to_role(role)])


def has_permission(role: RoleLike, permission: PermissionLike) -> bool:
    return to_permission(permission) in ROLE_PERMISSIONS[to_role(role)]


def permission_codes_for(role: RoleLike) -> List[str]:
    """Serialized form of permissions_for, used for token claims and JSON."""
    return [p.value for p in permissions_for(role)]


__all__ = [
    'Role',
    'Permission',
    'ALL_PERMISSIONS',
    'ROLE_PERMISSIONS',
    'to_role',
    'to_permission',
    'permissions_for',
    'has_permission',
    'permission_codes_for',
]
