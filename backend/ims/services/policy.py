from __future__ import annotations
"""Request-scoped authorization checks backed by the static role table.

The signed session token carries the user's role; permissions are always
resolved from ROLE_PERMISSIONS at check time, so a token can never grant more
than its role does today.
"""
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt

from ims.constants.permissions import PermissionLike, Role, has_permission, permission_codes_for, to_role


def current_role() -> Optional[Role]:
    """Role of the authenticated caller, or None when the claim is missing/unknown."""
    claims = get_jwt()
    raw = claims.get('role')
    if raw is None:
        return None
    try:
        return to_role(raw)
    except ValueError:
        return None


def has_permissions(*perms: PermissionLike) -> bool:
    role = current_role()
    if role is None:
        return False
    return all(has_permission(role, p) for p in perms)


def build_claims(role: Role) -> Dict[str, Any]:
    """Additional token claims for a user of ``role``."""
    return {'role': role.value, 'perms': permission_codes_for(role)}
