from functools import wraps
from flask import abort
from flask_jwt_extended import verify_jwt_in_request

from ims.constants.permissions import PermissionLike, to_permission
from ims.services.policy import has_permissions


def require_permissions(*perms: PermissionLike):
    # Resolve tokens at decoration time so a typo fails on import, not per request.
    resolved = tuple(to_permission(p) for p in perms)

    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if not has_permissions(*resolved):
                abort(403, description='Missing permission')
            return fn(*args, **kwargs)
        wrapper.required_permissions = resolved
        return wrapper
    return outer
