"""
Season Aggregator

Season standings are derived on read by summing WeeklyScore rows per user;
nothing here is persisted.
"""

import logging

from sqlalchemy import and_, case, func, or_

from pickem_pool import db
from pickem_pool.models import Game, Pick, User, WeeklyScore
from pickem_pool.models.game import STATUS_FINAL, STATUS_IN_PROGRESS, STATUS_SCHEDULED
from pickem_pool.utils.cache_utils import cached_query
from pickem_pool.utils.ranking import competition_rank
from pickem_pool.utils.timezone_utils import isoformat_utc

logger = logging.getLogger(__name__)


def season_rank_key(entry):
    return (-entry["total_points"], -entry["total_correct"], -entry["weeks_played"])


def season_order_key(entry):
    return (*season_rank_key(entry), entry["alias"].casefold(), entry["user_id"])


def win_percentage(correct, total):
    return round(correct / total * 100, 2) if total > 0 else 0.0


def rank_standings(entries):
    """Assign ``season_rank`` in place and return entries in standings order"""
    ranked = competition_rank(
        entries, rank_key=season_rank_key, order_key=season_order_key
    )
    standings = []
    for rank, entry in ranked:
        entry["season_rank"] = rank
        standings.append(entry)
    return standings


@cached_query("standings", timeout=300)
def season_standings(season):
    """
    Standings for a season.

    Active users with at least one scored week are included, plus admins
    with none so the commissioner account always appears.
    """
    weeks_played = func.count(WeeklyScore.id)
    rows = (
        db.session.query(
            User,
            weeks_played,
            func.coalesce(func.sum(WeeklyScore.correct_picks), 0),
            func.coalesce(func.sum(WeeklyScore.total_picks), 0),
            func.coalesce(func.sum(WeeklyScore.total_points), 0),
            func.coalesce(func.sum(WeeklyScore.possible_points), 0),
        )
        .outerjoin(
            WeeklyScore,
            and_(WeeklyScore.user_id == User.id, WeeklyScore.season == season),
        )
        .filter(User.is_active.is_(True))
        .group_by(User.id)
        .having(or_(weeks_played > 0, User.is_admin.is_(True)))
        .all()
    )

    entries = []
    for user, weeks, correct, games, points, possible in rows:
        entries.append(
            {
                "user_id": user.id,
                "username": user.username,
                "alias": user.alias,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "weeks_played": int(weeks),
                "total_correct": int(correct),
                "total_games": int(games),
                "total_points": int(points),
                "total_possible": int(possible),
                "season_win_percentage": win_percentage(int(correct), int(games)),
            }
        )

    logger.debug(f"Computed standings for {season}: {len(entries)} users")
    return rank_standings(entries)


def current_season_ranks(season):
    """{user_id: season_rank} for users currently in the standings"""
    return {entry["user_id"]: entry["season_rank"] for entry in season_standings(season)}


def user_score_history(user_id, season):
    """A user's weekly rows for a season with the season summary and rank"""
    weekly = (
        WeeklyScore.query.filter_by(user_id=user_id, season=season)
        .order_by(WeeklyScore.week)
        .all()
    )

    total_correct = sum(row.correct_picks for row in weekly)
    total_games = sum(row.total_picks for row in weekly)

    return {
        "user_id": user_id,
        "season": season,
        "weekly_scores": [row.to_dict() for row in weekly],
        "season_summary": {
            "weeks_played": len(weekly),
            "total_correct": total_correct,
            "total_games": total_games,
            "total_points": sum(row.total_points for row in weekly),
            "total_possible": sum(row.possible_points for row in weekly),
            "season_win_percentage": win_percentage(total_correct, total_games),
            "season_rank": current_season_ranks(season).get(user_id),
        },
    }


def league_summary(season):
    """League-wide totals, top performers and recent weeks"""
    total_users = User.query.filter_by(is_active=True).count()

    week_rows = (
        db.session.query(
            WeeklyScore.week,
            func.count(func.distinct(WeeklyScore.user_id)),
            func.coalesce(func.sum(WeeklyScore.total_picks), 0),
            func.coalesce(func.sum(WeeklyScore.correct_picks), 0),
        )
        .join(User, WeeklyScore.user_id == User.id)
        .filter(WeeklyScore.season == season, User.is_active.is_(True))
        .group_by(WeeklyScore.week)
        .order_by(WeeklyScore.week.desc())
        .all()
    )

    total_picks = sum(int(row[2]) for row in week_rows)
    total_correct = sum(int(row[3]) for row in week_rows)

    top_performers = [
        entry for entry in season_standings(season) if entry["weeks_played"] > 0
    ][:5]

    return {
        "season": season,
        "league_summary": {
            "total_users": total_users,
            "weeks_completed": len(week_rows),
            "total_picks_made": total_picks,
            "total_correct_picks": total_correct,
            "league_accuracy": win_percentage(total_correct, total_picks),
        },
        "top_performers": top_performers,
        "recent_weeks": [
            {
                "week": week,
                "participants": int(participants),
                "total_picks": int(picks),
                "correct_picks": int(correct),
                "week_accuracy": win_percentage(int(correct), int(picks)),
            }
            for week, participants, picks, correct in week_rows[:4]
        ],
    }


def week_stats(week, season):
    """Game status counts, kickoff window and pick accuracy for one week"""
    total, completed, live, scheduled, first_game, last_game = (
        db.session.query(
            func.count(Game.id),
            func.sum(case((Game.status == STATUS_FINAL, 1), else_=0)),
            func.sum(case((Game.status == STATUS_IN_PROGRESS, 1), else_=0)),
            func.sum(case((Game.status == STATUS_SCHEDULED, 1), else_=0)),
            func.min(Game.game_time),
            func.max(Game.game_time),
        )
        .filter(Game.season == season, Game.week == week)
        .one()
    )

    users_with_picks, total_picks, correct_picks = (
        db.session.query(
            func.count(func.distinct(Pick.user_id)),
            func.count(Pick.id),
            func.sum(case((Pick.is_correct.is_(True), 1), else_=0)),
        )
        .join(Game, Pick.game_id == Game.id)
        .filter(Game.season == season, Game.week == week)
        .one()
    )
    correct_picks = int(correct_picks or 0)

    return {
        "week": week,
        "season": season,
        "games": {
            "total": int(total),
            "completed": int(completed or 0),
            "live": int(live or 0),
            "scheduled": int(scheduled or 0),
            "first_game": isoformat_utc(first_game),
            "last_game": isoformat_utc(last_game),
        },
        "picks": {
            "users_with_picks": int(users_with_picks),
            "total_picks": int(total_picks),
            "correct_picks": correct_picks,
            "accuracy_rate": win_percentage(correct_picks, int(total_picks)),
        },
    }
