"""
Recap Composer

Everyone's picks for a week laid out as a grid, with pick percentages and
upset flags per game. A week's recap stays locked until its first kickoff
so nobody can copy picks that are still open.
"""

import logging
import math
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import case, func

from pickem_pool import db
from pickem_pool.exceptions import NotFoundError
from pickem_pool.models import Game, Pick, User
from pickem_pool.models.game import STATUS_FINAL
from pickem_pool.utils.timezone_utils import (
    ensure_utc,
    format_game_time,
    isoformat_utc,
)

logger = logging.getLogger(__name__)


def _percentage(part, whole):
    """Whole-number share; halves round up"""
    return math.floor(part / whole * 100 + 0.5) if whole > 0 else 0


def pick_percentages(game, selections, upset_threshold=40.0):
    """
    Pick split for one game.

    Args:
        game: Game
        selections: selected team of every pick on the game
        upset_threshold: winner share (percent) below which a final game
            counts as an upset

    Returns:
        dict with counts, whole-number percentages, ``winner`` and
        ``is_upset``. The upset test reads the rounded winner percentage,
        so 19 of 48 (39.6, shown as 40) is not an upset.
    """
    home_picks = sum(1 for team in selections if team == game.home_team)
    away_picks = sum(1 for team in selections if team == game.away_team)
    total_picks = home_picks + away_picks

    result = {
        "home_team": game.home_team,
        "away_team": game.away_team,
        "total_picks": total_picks,
        "home_team_picks": home_picks,
        "away_team_picks": away_picks,
        "home_team_percentage": _percentage(home_picks, total_picks),
        "away_team_percentage": _percentage(away_picks, total_picks),
        "winner": game.winning_team,
        "is_upset": False,
    }

    if game.winning_team is not None:
        winner_picks = home_picks if game.winning_team == game.home_team else away_picks
        result["is_upset"] = _percentage(winner_picks, total_picks) < upset_threshold

    return result


def recap(week, season, now=None):
    """
    Compose the recap for a week.

    Returns:
        Before the first kickoff, only ``gated=True`` with ``unlock_at``.
        Afterwards the games, one row per active user (picks keyed by
        game id, None where no pick was made), pick percentages per game
        and the tiebreaker guesses from the week's last game.

    Raises:
        NotFoundError: the week has no games
    """
    games = Game.get_games_for_week(season, week)
    if not games:
        raise NotFoundError(
            "No games found for this week", payload={"week": week, "season": season}
        )

    now = now or datetime.now(timezone.utc)
    first_kickoff = ensure_utc(games[0].game_time)

    if first_kickoff > now:
        logger.debug(f"Recap for week {week} of {season} locked until {first_kickoff}")
        return {
            "week": week,
            "season": season,
            "gated": True,
            "unlock_at": isoformat_utc(first_kickoff),
            "unlock_at_local": format_game_time(first_kickoff),
        }

    final_game = games[-1]
    game_ids = [game.id for game in games]

    picks_by_user = {}
    for pick in Pick.query.filter(Pick.game_id.in_(game_ids)):
        picks_by_user.setdefault(pick.user_id, {})[pick.game_id] = pick

    rows = []
    for user in User.query.filter_by(is_active=True):
        user_picks = picks_by_user.get(user.id, {})
        tiebreaker_pick = user_picks.get(final_game.id)
        rows.append(
            {
                "user_id": user.id,
                "username": user.username,
                "alias": user.alias,
                "picks": {
                    game.id: (
                        user_picks[game.id].selected_team if game.id in user_picks else None
                    )
                    for game in games
                },
                "tiebreaker_points": (
                    tiebreaker_pick.tiebreaker_points if tiebreaker_pick else None
                ),
            }
        )

    rows.sort(key=lambda row: (row["alias"].casefold(), row["user_id"]))

    threshold = current_app.config.get("UPSET_THRESHOLD_PERCENT", 40.0)
    percentages = {
        game.id: pick_percentages(
            game,
            [row["picks"][game.id] for row in rows if row["picks"][game.id]],
            upset_threshold=threshold,
        )
        for game in games
    }

    return {
        "week": week,
        "season": season,
        "gated": False,
        "games": [game.to_dict() for game in games],
        "final_game": final_game.to_dict(),
        "recap_data": rows,
        "pick_percentages": percentages,
        "total_users": len(rows),
        "total_games": len(games),
    }


def recap_weeks(season, now=None):
    """Weeks of a season with their kickoff window and recap availability"""
    now = now or datetime.now(timezone.utc)
    rows = (
        db.session.query(
            Game.week,
            func.min(Game.game_time),
            func.max(Game.game_time),
            func.count(Game.id),
            func.sum(case((Game.status == STATUS_FINAL, 1), else_=0)),
        )
        .filter(Game.season == season)
        .group_by(Game.week)
        .order_by(Game.week)
        .all()
    )

    weeks = []
    for week, first_game, last_game, game_count, completed in rows:
        available = ensure_utc(first_game) <= now
        weeks.append(
            {
                "week": week,
                "first_game_date": isoformat_utc(first_game),
                "last_game_date": isoformat_utc(last_game),
                "game_count": int(game_count),
                "completed_games": int(completed or 0),
                "recap_available": available,
            }
        )

    return {"season": season, "weeks": weeks}
