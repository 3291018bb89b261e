"""
Pick management

Week submissions replace a user's open picks as one unit: either every
pick of the submission is stored or the previous picks stay untouched.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

from pickem_pool import db
from pickem_pool.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    PickemError,
    PicksLockedError,
    ValidationError,
)
from pickem_pool.models import Game, Pick, User

logger = logging.getLogger(__name__)


def _check_owner(pick, acting_user):
    if pick.user_id != acting_user.id and not acting_user.is_admin:
        raise PermissionDeniedError("Access denied")


def _get_pick(pick_id):
    pick = db.session.get(Pick, pick_id)
    if pick is None:
        raise NotFoundError("Pick not found")
    return pick


def replace_week_picks(user, submissions, now=None):
    """
    Replace a user's picks for one week.

    Args:
        user: User the picks belong to
        submissions: list of dicts with game_id, selected_team and optional
            confidence_points / tiebreaker_points
        now: Reference time for the kickoff check

    Returns:
        dict with the stored picks, week and season

    Raises:
        ValidationError: unknown game, mixed weeks, duplicate game or a team
            not playing in the game
        PicksLockedError: a submitted game has already kicked off
    """
    now = now or datetime.now(timezone.utc)
    game_ids = [submission["game_id"] for submission in submissions]

    if len(set(game_ids)) != len(game_ids):
        raise ValidationError("Cannot make multiple picks for the same game")

    games = {game.id: game for game in Game.query.filter(Game.id.in_(game_ids))}
    missing = sorted(set(game_ids) - set(games))
    if missing:
        raise ValidationError("Some games not found", payload={"game_ids": missing})

    weeks = {(game.season, game.week) for game in games.values()}
    if len(weeks) > 1:
        raise ValidationError("All picks must be from the same week")
    season, week = weeks.pop()

    started = [game for game in games.values() if game.has_started(now)]
    if started:
        raise PicksLockedError(
            "Cannot submit picks for games that have already started",
            payload={
                "expired_games": [f"{g.away_team} @ {g.home_team}" for g in started]
            },
        )

    for submission in submissions:
        game = games[submission["game_id"]]
        if not game.has_team(submission["selected_team"]):
            raise ValidationError(
                f"Invalid team selection for game {game.away_team} @ {game.home_team}"
            )

    try:
        # Picks on games that already kicked off are kept as they are
        open_game_ids = [
            game.id
            for game in Game.get_games_for_week(season, week)
            if not game.has_started(now)
        ]
        Pick.query.filter(
            Pick.user_id == user.id, Pick.game_id.in_(open_game_ids)
        ).delete(synchronize_session="fetch")

        stored = []
        for submission in submissions:
            pick = Pick(
                user_id=user.id,
                game_id=submission["game_id"],
                selected_team=submission["selected_team"],
                confidence_points=submission.get("confidence_points") or 1,
                tiebreaker_points=submission.get("tiebreaker_points"),
            )
            db.session.add(pick)
            stored.append(pick)

        db.session.commit()

    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to save picks for user {user.id}: {e}", exc_info=True)
        raise PickemError("Failed to submit picks", status_code=500) from e

    logger.info(
        f"User {user.username} submitted {len(stored)} picks for week {week} of {season}"
    )

    return {
        "picks": [pick.to_dict() for pick in stored],
        "week": week,
        "season": season,
    }


def update_pick(acting_user, pick_id, selected_team=None, tiebreaker_points=None,
                confidence_points=None, now=None):
    """Change a single pick before its game kicks off"""
    pick = _get_pick(pick_id)
    _check_owner(pick, acting_user)

    game = pick.game
    if game.has_started(now):
        raise PicksLockedError("Cannot modify pick after game has started")

    if selected_team is not None:
        if not game.has_team(selected_team):
            raise ValidationError("Invalid team selection")
        pick.selected_team = selected_team
    if tiebreaker_points is not None:
        pick.tiebreaker_points = tiebreaker_points
    if confidence_points is not None:
        pick.confidence_points = confidence_points

    pick.updated_at = datetime.now(timezone.utc)
    db.session.commit()
    return pick


def delete_pick(acting_user, pick_id, now=None):
    """Remove a single pick before its game kicks off"""
    pick = _get_pick(pick_id)
    _check_owner(pick, acting_user)

    if pick.game.has_started(now):
        raise PicksLockedError("Cannot delete pick after game has started")

    owner_id = pick.user_id
    db.session.delete(pick)
    db.session.commit()
    logger.debug(f"Deleted pick {pick_id} for user {owner_id}")


def user_picks(user_id, season, week=None):
    """A user's picks for a season (optionally one week), by week and kickoff"""
    query = (
        Pick.query.join(Game)
        .filter(Pick.user_id == user_id, Game.season == season)
        .order_by(Game.week, Game.game_time, Game.id)
    )
    if week is not None:
        query = query.filter(Game.week == week)
    return query.all()


def week_picks(week, season):
    """Every pick of a week (admin view), grouped by username"""
    return (
        Pick.query.join(Game)
        .join(User, Pick.user_id == User.id)
        .filter(Game.season == season, Game.week == week)
        .order_by(User.username, Game.game_time, Game.id)
        .all()
    )
