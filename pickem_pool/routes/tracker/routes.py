from flask import jsonify
from flask_login import login_required

from pickem_pool.routes.helpers import check_week, json_body, resolve_season
from pickem_pool.routes.tracker import bp
from pickem_pool.schemas import ForecastRequest
from pickem_pool.services.forecast import forecast, tracker_accessibility


@bp.route("/forecast", methods=["POST"])
@login_required
def forecast_standings():
    """What-if standings for a week from worksheet scores"""
    body = ForecastRequest.model_validate(json_body())
    season = resolve_season(body.season)

    entries = forecast(body.score_map(), body.week, season)
    return jsonify({"week": body.week, "season": season, "forecast": entries})


@bp.route("/accessibility/<int:week>")
@login_required
def accessibility(week):
    week = check_week(week)
    return jsonify(tracker_accessibility(week, resolve_season()))
