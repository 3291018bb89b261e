import logging

from flask import jsonify
from flask_login import current_user, login_required

from pickem_pool import db
from pickem_pool.models import AdminAction
from pickem_pool.routes.helpers import (
    admin_required,
    check_week,
    require_self_or_admin,
    resolve_season,
    resolve_week,
)
from pickem_pool.routes.scores import bp
from pickem_pool.services.standings import (
    league_summary,
    season_standings,
    user_score_history,
)
from pickem_pool.utils.scoring import ScoringEngine, weekly_leaderboard

logger = logging.getLogger(__name__)


@bp.route("/weekly")
def weekly():
    """Weekly leaderboard from stored WeeklyScore rows"""
    week = resolve_week()
    season = resolve_season()
    return jsonify(
        {
            "week": week,
            "season": season,
            "leaderboard": weekly_leaderboard(week, season),
        }
    )


@bp.route("/season")
def season():
    season = resolve_season()
    return jsonify({"season": season, "standings": season_standings(season)})


@bp.route("/user/<int:user_id>")
@login_required
def user_scores(user_id):
    require_self_or_admin(user_id)
    return jsonify(user_score_history(user_id, resolve_season()))


@bp.route("/summary")
def summary():
    return jsonify(league_summary(resolve_season()))


@bp.route("/calculate/<int:week>", methods=["POST"])
@admin_required
def calculate(week):
    """Recompute a week's scores and ranks"""
    week = check_week(week)
    season = resolve_season()

    result = ScoringEngine().recompute(week, season)

    AdminAction.log_score_calculation(current_user.id, week, season, result["users_updated"])
    db.session.commit()

    if result["users_updated"] == 0:
        message = f"No picks found for Week {week}, {season}; nothing to score"
    else:
        message = f"Weekly scores calculated for Week {week}, {season}"

    return jsonify(
        {
            "message": message,
            "week": week,
            "season": season,
            "users_updated": result["users_updated"],
            "leaderboard": result["leaderboard"],
        }
    )
