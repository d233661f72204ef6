from functools import wraps

from flask_jwt_extended import get_jwt_identity

from vet_clinic.extensions import db
from vet_clinic.exceptions import AuthError, PermissionDeniedError
from vet_clinic.models import User


def get_current_user():
    """Return the User named by the JWT identity, or None."""
    try:
        user_id = int(get_jwt_identity())
    except (TypeError, ValueError):
        return None
    return db.session.get(User, user_id)


def current_user_or_401():
    user = get_current_user()
    if user is None:
        raise AuthError('Authentication required')
    return user


def require_role(*roles):
    """
    Decorator to require specific roles
    Usage: @require_role('ADMIN', 'VETERINARIAN')
    Must be used together with @jwt_required() on the route.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = current_user_or_401()
            if not user.has_role(*roles):
                raise PermissionDeniedError(f'Permission denied. Required roles: {", ".join(roles)}')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
