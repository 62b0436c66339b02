# Overview: Request decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .extensions import db
from .models import Business


def _requested_business_id():
    raw = request.headers.get("X-Business-Id") or request.args.get("business_id")
    if raw is None:
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def require_business(f):
    """
    Establish tenant context.

    The business comes from the X-Business-Id header or ?business_id=.
    Sets g.business_id and g.business. Returns 400 when missing or malformed
    and 404 when the business does not exist.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        business_id = _requested_business_id()
        if business_id is None:
            return jsonify({"error": "business_id is required", "kind": "INVALID_INPUT"}), 400

        business = db.session.get(Business, business_id)
        if business is None:
            return jsonify({"error": f"Business {business_id} not found", "kind": "NOT_FOUND"}), 404

        g.business_id = business.id
        g.business = business
        return f(*args, **kwargs)

    return decorated_function
