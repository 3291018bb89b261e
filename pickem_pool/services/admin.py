"""
Admin operations

Every change made here is written to the AdminAction audit log in the same
transaction as the change itself.
"""

import logging

from sqlalchemy.exc import IntegrityError

from pickem_pool import db
from pickem_pool.exceptions import NotFoundError, ValidationError
from pickem_pool.models import AdminAction, Game, User
from pickem_pool.models.game import STATUS_FINAL, STATUS_SCHEDULED
from pickem_pool.utils.cache_utils import invalidate_model_cache
from pickem_pool.utils.timezone_utils import convert_to_utc, to_storage

logger = logging.getLogger(__name__)


def _get_game(game_id):
    game = db.session.get(Game, game_id)
    if game is None:
        raise NotFoundError("Game not found")
    return game


def record_game_result(admin_user, game_id, home_score, away_score):
    """
    Store a final score and grade the game's picks.

    Weekly totals are not touched; run the scoring engine for the week to
    refresh WeeklyScore rows and ranks.
    """
    game = _get_game(game_id)
    game.record_result(home_score, away_score)
    AdminAction.log_result_entry(admin_user.id if admin_user else None, game)
    db.session.commit()

    logger.info(
        f"Result recorded for game {game.id}: {game.away_team} {away_score} @ "
        f"{game.home_team} {home_score}"
    )
    return game


def create_game(admin_user, season, week, home_team, away_team, game_time, spread=None):
    """Add a game to the schedule; naive kickoff times are read in the app timezone"""
    game = Game(
        season=season,
        week=week,
        home_team=home_team,
        away_team=away_team,
        game_time=to_storage(convert_to_utc(game_time)),
        spread=spread,
        status=STATUS_SCHEDULED,
    )
    db.session.add(game)

    try:
        db.session.flush()
    except IntegrityError as e:
        db.session.rollback()
        raise ValidationError("Invalid game data") from e

    AdminAction.log_action(
        admin_user_id=admin_user.id if admin_user else None,
        action_type="create_game",
        description=f"Added {away_team} @ {home_team} (Week {week}, {season})",
        game_id=game.id,
        week=week,
        season=season,
    )
    db.session.commit()

    logger.info(f"Created game {game.id}: {away_team} @ {home_team} week {week} of {season}")
    return game


def set_game_status(admin_user, game_id, status):
    """
    Move a game between scheduled and in_progress.

    Reopening a final game clears its score and the grades of its picks.
    Final results go through ``record_game_result``.
    """
    if status == STATUS_FINAL:
        raise ValidationError("Use the result endpoint to finalize a game")

    game = _get_game(game_id)
    previous = game.status

    if game.is_final:
        game.home_score = None
        game.away_score = None
        for pick in game.picks.all():
            pick.clear_result()
    game.status = status

    AdminAction.log_action(
        admin_user_id=admin_user.id if admin_user else None,
        action_type="set_game_status",
        description=f"Game {game.id} status {previous} -> {status}",
        game_id=game.id,
        week=game.week,
        season=game.season,
        action_metadata={"previous": previous, "status": status},
    )
    db.session.commit()
    return game


def list_users():
    return User.query.order_by(User.created_at.desc(), User.id.desc()).all()


def create_user(admin_user, username, email, password, first_name=None,
                last_name=None, display_name=None, is_admin=False):
    """Add an active user; admins show up in the standings straight away"""
    existing = User.query.filter(
        (User.username == username) | (User.email == email)
    ).first()
    if existing:
        raise ValidationError(
            f"User with username '{username}' or email '{email}' already exists"
        )

    user = User(
        username=username,
        email=email,
        first_name=first_name,
        last_name=last_name,
        is_active=True,
        is_admin=is_admin,
    )
    user.set_display_name(display_name)
    user.set_password(password)
    db.session.add(user)

    try:
        db.session.flush()
        AdminAction.log_action(
            admin_user_id=admin_user.id if admin_user else None,
            action_type="create_user",
            description=f"Created {'admin ' if is_admin else ''}user {username}",
            target_user_id=user.id,
            action_metadata={"is_admin": is_admin},
        )
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise ValidationError(f"User '{username}' already exists") from e

    invalidate_model_cache("standings")
    logger.info(f"Created {'admin ' if is_admin else ''}user {username}")
    return user


def update_user(admin_user, user_id, is_admin=None, is_active=None, display_name=None):
    """Toggle a user's admin/active flags or change their alias"""
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")

    changes = {}
    if is_admin is not None and is_admin != user.is_admin:
        if not is_admin and admin_user and user.id == admin_user.id:
            raise ValidationError("You cannot remove your own admin rights")
        user.is_admin = is_admin
        changes["is_admin"] = is_admin
    if is_active is not None and is_active != user.is_active:
        user.is_active = is_active
        changes["is_active"] = is_active
    if display_name is not None:
        user.set_display_name(display_name)
        changes["display_name"] = user.display_name

    if changes:
        AdminAction.log_action(
            admin_user_id=admin_user.id if admin_user else None,
            action_type="update_user",
            description=f"Updated {user.username}: {', '.join(sorted(changes))}",
            target_user_id=user.id,
            action_metadata=changes,
        )
        db.session.commit()
        invalidate_model_cache("standings")
        logger.info(f"User {user.username} updated: {changes}")

    return user
