"""Request-boundary helpers shared by the JSON blueprints"""

from datetime import datetime, timezone
from functools import wraps

from flask import request
from flask_login import current_user, login_required

from pickem_pool.exceptions import PermissionDeniedError, ValidationError
from pickem_pool.models import Season


def admin_required(f):
    """login_required plus an admin check"""

    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            raise PermissionDeniedError("Admin access required")
        return f(*args, **kwargs)

    return decorated_function


def require_self_or_admin(user_id):
    if current_user.id != user_id and not current_user.is_admin:
        raise PermissionDeniedError("Access denied")


def check_week(week):
    if week is None or week < 1:
        raise ValidationError("Week must be a positive integer")
    return week


def resolve_season(season=None):
    """Season year from the argument, ?season=, the active season, or this year"""
    if season is None:
        raw = request.args.get("season")
        if raw not in (None, ""):
            try:
                season = int(raw)
            except ValueError:
                raise ValidationError("Season must be an integer") from None

    if season is not None:
        if season < 1:
            raise ValidationError("Season must be a positive integer")
        return season

    active = Season.get_current_season()
    if active:
        return active.year
    return datetime.now(timezone.utc).year


def resolve_week(week=None):
    """Week from the argument, ?week=, or the active season's current week"""
    if week is None:
        raw = request.args.get("week")
        if raw not in (None, ""):
            try:
                week = int(raw)
            except ValueError:
                raise ValidationError("Week must be a positive integer") from None

    if week is None:
        active = Season.get_current_season()
        week = active.current_week if active else 1

    return check_week(week)


def json_body():
    return request.get_json(silent=True) or {}
