from flask import jsonify
from flask_login import login_required

from pickem_pool.exceptions import ValidationError
from pickem_pool.routes.helpers import check_week, resolve_season
from pickem_pool.routes.recap import bp
from pickem_pool.services.recap import recap, recap_weeks


@bp.route("/week/<int:week>")
@login_required
def week_recap(week):
    """Everyone's picks for a week; locked (gated) until the first kickoff"""
    week = check_week(week)
    return jsonify(recap(week, resolve_season()))


@bp.route("/weeks/<int:season>")
@login_required
def weeks(season):
    if season < 1:
        raise ValidationError("Season must be a positive integer")
    return jsonify(recap_weeks(season))
