import logging
from datetime import datetime, timezone

from flask import current_app, jsonify, request
from flask_login import current_user, login_required
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from pickem_pool import db, limiter
from pickem_pool.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from pickem_pool.models import Game, Season, User
from pickem_pool.models.game import STATUS_SCHEDULED
from pickem_pool.routes.api import bp
from pickem_pool.routes.helpers import (
    admin_required,
    check_week,
    json_body,
    require_self_or_admin,
    resolve_season,
    resolve_week,
)
from pickem_pool.schemas import PickSubmission, PickUpdate
from pickem_pool.services import picks as pick_service
from pickem_pool.services.standings import week_stats

logger = logging.getLogger(__name__)


# ========== GAMES ==========


@bp.route("/games")
def games():
    """Games of a season, optionally limited to one week"""
    season = resolve_season()
    query = Game.query.filter_by(season=season)

    if request.args.get("week"):
        query = query.filter_by(week=resolve_week())

    return jsonify([game.to_dict() for game in query.order_by(Game.week, Game.game_time, Game.id)])


@bp.route("/games/current-week")
def current_week_games():
    season = resolve_season()
    week = resolve_week()
    return jsonify(
        {
            "week": week,
            "season": season,
            "games": [game.to_dict() for game in Game.get_games_for_week(season, week)],
        }
    )


@bp.route("/games/week/<int:week>")
def week_games(week):
    week = check_week(week)
    season = resolve_season()
    return jsonify(
        {
            "week": week,
            "season": season,
            "games": [game.to_dict() for game in Game.get_games_for_week(season, week)],
        }
    )


@bp.route("/games/week/<int:week>/stats")
def week_game_stats(week):
    """Game status counts and pick accuracy for a week"""
    week = check_week(week)
    return jsonify(week_stats(week, resolve_season()))


@bp.route("/games/<int:game_id>")
def game_detail(game_id):
    game = db.session.get(Game, game_id)
    if game is None:
        raise NotFoundError("Game not found")
    return jsonify(game.to_dict(include_picks_count=game.has_started()))


@bp.route("/games/<int:game_id>/picks")
@login_required
def game_picks(game_id):
    """Picks on one game; hidden from non-admins until kickoff"""
    game = db.session.get(Game, game_id)
    if game is None:
        raise NotFoundError("Game not found")

    started = game.has_started()
    if not started and not current_user.is_admin:
        raise PermissionDeniedError(
            "Picks are hidden until game starts",
            payload={"game_date": game.to_dict()["game_time"]},
        )

    picks = sorted(
        game.picks.all(), key=lambda pick: (pick.user.sort_name, pick.user.username)
    )
    return jsonify(
        {
            "game_id": game.id,
            "status": game.status,
            "picks_visible": started,
            "picks": [
                {
                    "pick_id": pick.id,
                    "selected_team": pick.selected_team,
                    "tiebreaker_points": pick.tiebreaker_points,
                    "is_correct": pick.is_correct,
                    "username": pick.user.username,
                    "alias": pick.user.alias,
                }
                for pick in picks
            ],
        }
    )


# ========== SYSTEM ==========


@bp.route("/system/current-week")
def current_week():
    """The season clock as read at the request boundary"""
    season = Season.get_current_season()
    if season is None:
        return jsonify({"season": resolve_season(), "week": 1, "active_season": None})

    return jsonify(
        {
            "season": season.year,
            "week": season.current_week,
            "is_playoff_week": season.is_playoff_week(season.current_week),
            "active_season": season.to_dict(),
        }
    )


@bp.route("/system/health")
@limiter.exempt
def health():
    """Health check endpoint - exempt from rate limiting for monitoring systems"""
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        db.session.execute(text("SELECT 1"))
        active_users = User.query.filter_by(is_active=True).count()
        upcoming_games = Game.query.filter_by(status=STATUS_SCHEDULED).count()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Health check failed: {e}")
        return (
            jsonify(
                {
                    "status": "unhealthy",
                    "timestamp": timestamp,
                    "database": "disconnected",
                }
            ),
            503,
        )

    return jsonify(
        {
            "status": "healthy",
            "timestamp": timestamp,
            "database": "connected",
            "stats": {"active_users": active_users, "upcoming_games": upcoming_games},
        }
    )


# ========== PICKS ==========


@bp.route("/picks/user/<int:user_id>")
@login_required
def user_picks(user_id):
    require_self_or_admin(user_id)

    season = resolve_season()
    week = resolve_week() if request.args.get("week") else None
    picks = pick_service.user_picks(user_id, season, week)
    return jsonify([pick.to_dict(include_game=True) for pick in picks])


@bp.route("/picks/week/<int:week>")
@admin_required
def week_picks(week):
    week = check_week(week)
    season = resolve_season()
    picks = pick_service.week_picks(week, season)
    return jsonify(
        [
            dict(pick.to_dict(include_game=True), username=pick.user.username)
            for pick in picks
        ]
    )


@bp.route("/picks", methods=["POST"])
@login_required
def submit_picks():
    """Replace the current user's open picks for one week"""
    submission = PickSubmission.model_validate(json_body())
    limit = current_app.config.get("MAX_PICKS_PER_SUBMISSION", 16)
    if len(submission.picks) > limit:
        raise ValidationError(f"At most {limit} picks per submission")

    target_user = current_user
    if submission.user_id is not None and submission.user_id != current_user.id:
        if not current_user.is_admin:
            raise PermissionDeniedError("Access denied")
        target_user = db.session.get(User, submission.user_id)
        if target_user is None:
            raise NotFoundError("User not found")

    result = pick_service.replace_week_picks(
        target_user, [pick.model_dump() for pick in submission.picks]
    )
    result["message"] = "Picks submitted successfully"
    return jsonify(result), 201


@bp.route("/picks/<int:pick_id>", methods=["PUT"])
@login_required
def update_pick(pick_id):
    update = PickUpdate.model_validate(json_body())
    pick = pick_service.update_pick(
        current_user,
        pick_id,
        selected_team=update.selected_team,
        tiebreaker_points=update.tiebreaker_points,
        confidence_points=update.confidence_points,
    )
    return jsonify({"message": "Pick updated successfully", "pick": pick.to_dict()})


@bp.route("/picks/<int:pick_id>", methods=["DELETE"])
@login_required
def delete_pick(pick_id):
    pick_service.delete_pick(current_user, pick_id)
    return jsonify({"message": "Pick deleted successfully"})
