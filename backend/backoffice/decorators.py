# Overview: Request decorators that establish the calling principal for API routes.

from functools import wraps
from flask import request, jsonify, g

from .principals import PRINCIPAL_KINDS, build_principal


def require_principal(*kinds: str):
    """
    Require a principal supplied by the upstream gateway.

    The gateway authenticates and forwards identity in headers:
    - X-Principal-Kind: admin | employee | client
    - X-Principal-Id: opaque reference recorded on entities
    - X-Principal-Name: optional display name

    Sets g.principal. Returns 401 if identity is missing or malformed,
    403 if the principal's kind is not in ``kinds`` (when given).
    """
    allowed = set(kinds) or set(PRINCIPAL_KINDS)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            kind = (request.headers.get("X-Principal-Kind") or "").strip().lower()
            ref = (request.headers.get("X-Principal-Id") or "").strip()
            name = request.headers.get("X-Principal-Name")

            if not kind or not ref:
                return jsonify({"error": "Authentication required"}), 401
            try:
                principal = build_principal(kind, ref, name)
            except ValueError:
                return jsonify({"error": "Invalid principal"}), 401

            if principal.kind not in allowed:
                return jsonify({"error": "Permission denied"}), 403

            g.principal = principal
            return f(*args, **kwargs)

        return decorated_function

    return decorator
