"""
Caller identity and role checks for the collections routes
"""

from functools import wraps

from flask import abort, request
from flask_login import current_user

from app.buisness.collections.context import CallerContext
from app.data.core.user_info.user import User


def caller_context() -> CallerContext:
    """
    CallerContext for the current request. An optional X-Request-Timeout header
    (seconds) becomes the caller's deadline.
    """
    user_id = current_user.id if current_user.is_authenticated else None
    role = current_user.role if current_user.is_authenticated else None
    timeout = request.headers.get('X-Request-Timeout', type=float)
    if timeout:
        return CallerContext.with_timeout(timeout, user_id=user_id, role=role)
    return CallerContext(user_id=user_id, role=role)


def roles_required(*roles):
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if current_user.role not in roles:
                abort(403)
            return view(*args, **kwargs)
        return wrapped
    return decorator


admin_required = roles_required(User.ROLE_ADMIN)
staff_required = roles_required(User.ROLE_ADMIN, User.ROLE_COMPANY)


def ensure_owner_or_staff(owner_id: int) -> None:
    if current_user.role in (User.ROLE_ADMIN, User.ROLE_COMPANY):
        return
    if current_user.id != owner_id:
        abort(403)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        abort(400, description='Request body must be a JSON object')
    return data
