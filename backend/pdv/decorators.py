# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .errors import AuthenticationError, ForbiddenError
from .permissions import has_permission


def _is_authenticated() -> bool:
    return getattr(g, "identity", None) is not None


def _unauthenticated(message: str):
    return jsonify(AuthenticationError(message).to_dict()), AuthenticationError.status


def get_authorizer():
    return current_app.extensions["pdv_authorizer"]


def require_auth(f):
    """
    Require a bearer token and resolve it to an Identity.

    Sets g.identity (user_id, role) for the route and the services it calls.

    Returns 401 if:
    - No Authorization header
    - Token unknown to the configured authorizer
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return _unauthenticated("Authentication required")

        token = auth_header.split(" ", 1)[1].strip()
        identity = get_authorizer().resolve(token)

        if identity is None:
            current_app.logger.warning("Rejected bearer token on %s %s", request.method, request.path)
            return _unauthenticated("Invalid token")

        g.identity = identity
        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """
    Require a specific permission for the authenticated role.

    Services re-check the same permission, so this only short-circuits the
    request before any payload parsing.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return _unauthenticated("Authentication required")

            identity = g.identity
            if not has_permission(identity, permission_code):
                current_app.logger.info(
                    "Permission %s denied to %s (%s) on %s",
                    permission_code, identity.user_id, identity.role, request.path,
                )
                denied = ForbiddenError(
                    "Permission denied",
                    details={"required_permission": permission_code, "role": identity.role},
                )
                return jsonify(denied.to_dict()), denied.status

            return f(*args, **kwargs)

        return decorated_function
    return decorator
