"""
Live Forecast Calculator

What-if standings for a week given hypothetical (in-progress or invented)
scores. Nothing is written: picks and weekly scores are only read.
"""

import logging
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import func

from pickem_pool import db
from pickem_pool.models import Game, Pick, User, WeeklyScore
from pickem_pool.services.standings import rank_standings, season_standings
from pickem_pool.utils.ranking import positional_rank
from pickem_pool.utils.scoring import winner_for_scores
from pickem_pool.utils.timezone_utils import ensure_utc, isoformat_utc

logger = logging.getLogger(__name__)


def _clamp(value, limit):
    return max(-limit, min(limit, value))


def _score_user_week(picks, games_by_id, hypothetical_scores):
    """(correct_picks, hypothetical_points) for one user's picks"""
    correct = 0
    points = 0
    for pick in picks:
        score = hypothetical_scores.get(pick.game_id)
        if score is None:
            continue
        game = games_by_id[pick.game_id]
        winner = winner_for_scores(
            game.home_team, game.away_team, score["home_score"], score["away_score"]
        )
        if winner is not None and pick.selected_team == winner:
            correct += 1
            points += pick.confidence_points
    return correct, points


def _zero_totals(entry):
    return {
        "user_id": entry["user_id"],
        "alias": entry["alias"],
        "total_points": 0,
        "total_correct": 0,
        "weeks_played": 0,
    }


def _current_season_ranks(standings, entries):
    """Season ranks with forecast users who have no scored week ranked at zero"""
    pool = {entry["user_id"]: dict(entry) for entry in standings}
    for entry in entries:
        pool.setdefault(entry["user_id"], _zero_totals(entry))
    return {
        entry["user_id"]: entry["season_rank"]
        for entry in rank_standings(list(pool.values()))
    }


def _project_season_ranks(standings, entries, week, season):
    """Season ranks with the hypothetical week folded into each user's totals

    A week that has already been scored is replaced rather than added.
    """
    projected = {entry["user_id"]: dict(entry) for entry in standings}
    scored = {
        row.user_id: row for row in WeeklyScore.query.filter_by(week=week, season=season)
    }

    for entry in entries:
        totals = projected.setdefault(entry["user_id"], _zero_totals(entry))
        existing = scored.get(entry["user_id"])
        if existing is not None and totals["weeks_played"] > 0:
            totals["total_points"] -= existing.total_points
            totals["total_correct"] -= existing.correct_picks
            totals["weeks_played"] -= 1

        totals["total_points"] += entry["hypothetical_points"]
        totals["total_correct"] += entry["correct_picks"]
        totals["weeks_played"] += 1

    return {
        entry["user_id"]: entry["season_rank"]
        for entry in rank_standings(list(projected.values()))
    }


def forecast(hypothetical_scores, week, season):
    """
    Rank users by how their picks fare under hypothetical scores.

    Args:
        hypothetical_scores: {game_id: {"home_score": int, "away_score": int}}.
            Games left out are undecided and count for nobody; ids outside
            the week are ignored.
        week: Week number
        season: Season year

    Returns:
        List of forecast entries ordered by ``weekly_rank`` (1..N, no
        shared ranks). ``yearly_rank`` is the user's current season rank (users
        without a scored week rank on zero totals) and
        ``yearly_rank_change`` the bounded move that rank would make with
        this week folded in (negative = improvement).
    """
    games = Game.get_games_for_week(season, week)
    if not games:
        logger.info(f"Forecast requested for week {week} of {season} with no games")
        return []

    games_by_id = {game.id: game for game in games}
    scores = {
        game_id: score
        for game_id, score in hypothetical_scores.items()
        if game_id in games_by_id
    }
    ignored = set(hypothetical_scores) - set(scores)
    if ignored:
        logger.debug(f"Ignoring hypothetical scores for games outside week {week}: {sorted(ignored)}")

    rows = (
        db.session.query(Pick, User)
        .join(User, Pick.user_id == User.id)
        .join(Game, Pick.game_id == Game.id)
        .filter(Game.season == season, Game.week == week, User.is_active.is_(True))
        .all()
    )

    picks_by_user = {}
    users = {}
    for pick, user in rows:
        picks_by_user.setdefault(user.id, []).append(pick)
        users[user.id] = user

    entries = []
    for user_id, picks in picks_by_user.items():
        user = users[user_id]
        correct, points = _score_user_week(picks, games_by_id, scores)
        entries.append(
            {
                "user_id": user_id,
                "username": user.username,
                "alias": user.alias,
                "weekly_record": f"{correct}-{len(picks) - correct}",
                "correct_picks": correct,
                "total_picks": len(picks),
                "hypothetical_points": points,
            }
        )

    ranked = positional_rank(
        entries,
        order_key=lambda e: (-e["correct_picks"], e["alias"].casefold(), e["user_id"]),
    )

    standings = season_standings(season)
    current_ranks = _current_season_ranks(standings, entries)
    projected_ranks = _project_season_ranks(standings, entries, week, season)
    limit = current_app.config.get("FORECAST_RANK_CHANGE_LIMIT", 3)

    results = []
    for weekly_rank, entry in ranked:
        current_rank = current_ranks[entry["user_id"]]
        change = _clamp(projected_ranks[entry["user_id"]] - current_rank, limit)

        entry.update(
            {
                "weekly_rank": weekly_rank,
                "yearly_rank": current_rank,
                "yearly_rank_change": change,
            }
        )
        results.append(entry)

    return results


def tracker_accessibility(week, season, now=None):
    """Whether the live tracker for a week is open (first kickoff has passed)"""
    first_game_time = (
        db.session.query(func.min(Game.game_time))
        .filter(Game.season == season, Game.week == week)
        .scalar()
    )
    now = now or datetime.now(timezone.utc)

    return {
        "week": week,
        "season": season,
        "accessible": bool(first_game_time and ensure_utc(first_game_time) <= now),
        "first_game_date": isoformat_utc(first_game_time),
    }
