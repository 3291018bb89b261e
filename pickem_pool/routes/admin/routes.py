import logging

from flask import jsonify, request
from flask_login import current_user

from pickem_pool.exceptions import ValidationError
from pickem_pool.models import AdminAction
from pickem_pool.routes.admin import bp
from pickem_pool.routes.helpers import admin_required, json_body
from pickem_pool.schemas import GameCreate, GameResult, GameStatusUpdate, UserUpdate
from pickem_pool.services import admin as admin_service

logger = logging.getLogger(__name__)


# ========== GAMES ==========


@bp.route("/games", methods=["POST"])
@admin_required
def create_game():
    data = GameCreate.model_validate(json_body())
    game = admin_service.create_game(current_user, **data.model_dump())
    return jsonify({"message": "Game created", "game": game.to_dict()}), 201


@bp.route("/games/<int:game_id>/result", methods=["PUT"])
@admin_required
def game_result(game_id):
    """Enter a final score; run /api/scores/calculate to refresh the week"""
    data = GameResult.model_validate(json_body())
    game = admin_service.record_game_result(
        current_user, game_id, data.home_score, data.away_score
    )
    return jsonify({"message": "Game result updated successfully", "game": game.to_dict()})


@bp.route("/games/<int:game_id>/status", methods=["PUT"])
@admin_required
def game_status(game_id):
    data = GameStatusUpdate.model_validate(json_body())
    game = admin_service.set_game_status(current_user, game_id, data.status)
    return jsonify({"message": "Game status updated", "game": game.to_dict()})


# ========== USERS ==========


@bp.route("/users")
@admin_required
def users():
    return jsonify([user.to_dict(include_private=True) for user in admin_service.list_users()])


@bp.route("/users/<int:user_id>", methods=["PUT"])
@admin_required
def update_user(user_id):
    data = UserUpdate.model_validate(json_body())
    user = admin_service.update_user(current_user, user_id, **data.model_dump())
    return jsonify({"message": "User updated successfully", "user": user.to_dict(include_private=True)})


# ========== AUDIT & SCHEDULER ==========


@bp.route("/actions")
@admin_required
def actions():
    limit = request.args.get("limit", 50, type=int)
    return jsonify([action.to_dict() for action in AdminAction.get_recent(min(limit, 500))])


@bp.route("/scheduler")
@admin_required
def scheduler_status():
    from pickem_pool.services.scheduler_service import scheduler_service

    return jsonify(scheduler_service.get_status())


@bp.route("/scheduler/action", methods=["POST"])
@admin_required
def scheduler_action():
    """Start, stop or force-run background jobs"""
    from pickem_pool.services.scheduler_service import scheduler_service

    data = json_body()
    action = data.get("action")

    if action == "start":
        if scheduler_service.scheduler is None:
            raise ValidationError("Scheduler is not initialized")
        scheduler_service.start()
        return jsonify({"message": "Scheduler started successfully"})

    if action == "stop":
        scheduler_service.stop()
        return jsonify({"message": "Scheduler stopped successfully"})

    if action == "run":
        success, message = scheduler_service.force_run(data.get("job_type", "rescore"))
        if success:
            return jsonify({"message": message})
        return jsonify({"error": message}), 500

    if action in ("pause_job", "resume_job"):
        job_id = data.get("job_id")
        if not job_id:
            raise ValidationError("Job ID required")

        handler = scheduler_service.pause_job if action == "pause_job" else scheduler_service.resume_job
        success, message = handler(job_id)
        if success:
            return jsonify({"message": message})
        return jsonify({"error": message}), 500

    raise ValidationError("Unknown action")
