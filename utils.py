"""
Shared helpers for the certificate service.
"""
from typing import Optional, Any
from datetime import datetime, UTC
from functools import wraps
from flask import current_app, jsonify, request
from flask_login import current_user
from models import AdminUser


def safe_parse_datetime(value) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp to an aware datetime, or None for invalid/empty input.

    Naive values are taken as UTC; a trailing 'Z' is accepted.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            v = str(value).strip()
        except Exception:
            return None
        if v == '':
            return None
        if v.endswith(('Z', 'z')):
            v = v[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(v)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def json_error(message: str, status: int, **extra):
    body = {'success': False, 'error': message}
    body.update(extra)
    return jsonify(body), status


def get_json_payload() -> dict:
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def clean_field(payload: dict, name: str) -> str:
    """Return payload[name] stripped, or '' when absent or not a string."""
    value: Any = payload.get(name)
    if not isinstance(value, str):
        return ''
    return value.strip()


def get_service():
    return current_app.extensions['certificates']


def is_admin(user=None) -> bool:
    if user is None:
        user = current_user
    if not user or not user.is_authenticated:
        return False
    return isinstance(user, AdminUser)


def admin_required(f):
    """Decorator to require an admin session for an API route.

    Usage:
        @admin_required
        def my_protected_route():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not is_admin():
            return current_app.login_manager.unauthorized()
        return f(*args, **kwargs)
    return decorated_function
