"""
Scoring Engine for the pick'em pool

Grades picks against final scores, rolls them up into one WeeklyScore row
per user and week, and ranks the week. Season-level aggregation lives in
pickem_pool.services.standings.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from pickem_pool import db
from pickem_pool.exceptions import ScoringError
from pickem_pool.models import Game, Pick, User, WeeklyScore
from pickem_pool.utils.cache_utils import invalidate_model_cache
from pickem_pool.utils.performance import timer
from pickem_pool.utils.ranking import competition_rank

logger = logging.getLogger(__name__)


def winner_for_scores(home_team, away_team, home_score, away_score):
    """Team that outscored the other, or None for a tie"""
    if home_score > away_score:
        return home_team
    if away_score > home_score:
        return away_team
    return None


def pick_outcome(pick, game):
    """
    Grade a single pick.

    Returns:
        (None, None) while the game is not final
        (True, confidence_points) when the picked team won
        (False, 0) when it lost, including an exact tie
    """
    if not game.is_final:
        return None, None

    winner = winner_for_scores(
        game.home_team, game.away_team, game.home_score, game.away_score
    )
    if winner is not None and pick.selected_team == winner:
        return True, pick.confidence_points
    return False, 0


def weekly_rank_key(score):
    return (-score.total_points, -score.correct_picks)


def tally_picks(picks):
    """Per-user weekly totals from graded picks

    Every pick counts toward total_picks; only picks on final games count
    toward possible_points.
    """
    totals = {}
    for pick in picks:
        entry = totals.setdefault(
            pick.user_id,
            {
                "correct_picks": 0,
                "total_picks": 0,
                "total_points": 0,
                "possible_points": 0,
            },
        )
        entry["total_picks"] += 1
        if pick.game.is_final:
            entry["possible_points"] += pick.confidence_points
        if pick.is_correct:
            entry["correct_picks"] += 1
            entry["total_points"] += pick.points_earned or 0

    for entry in totals.values():
        entry["win_percentage"] = (
            entry["correct_picks"] / entry["total_picks"] * 100
            if entry["total_picks"] > 0
            else 0.0
        )

    return totals


class ScoringEngine:
    """Recomputes weekly scores and ranks for one (week, season)"""

    @timer
    def recompute(self, week, season):
        """
        Grade every pick of the week, upsert WeeklyScore rows and rank them.

        The whole run is one transaction. The week's game rows are locked
        first so that two recomputes of the same week cannot interleave.

        Returns:
            dict with ``users_updated`` and the refreshed ``leaderboard``

        Raises:
            ScoringError: the data store failed; nothing was written
        """
        logger.info(f"Recalculating scores for week {week} of {season}")

        try:
            games = (
                Game.query.filter_by(season=season, week=week)
                .order_by(Game.id)
                .with_for_update()
                .all()
            )
            final_games = sum(1 for game in games if game.is_final)

            picks = (
                Pick.query.join(Game)
                .filter(Game.season == season, Game.week == week)
                .all()
            )

            for pick in picks:
                pick.update_result()

            totals = tally_picks(picks)
            db.session.flush()

            for user_id, scores in totals.items():
                WeeklyScore.upsert(user_id, week, season, **scores)

            rows = WeeklyScore.for_week(week, season)
            for rank, row in competition_rank(rows, rank_key=weekly_rank_key):
                row.weekly_rank = rank

            db.session.commit()

        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(
                f"Score calculation failed for week {week} of {season}: {e}",
                exc_info=True,
            )
            raise ScoringError(payload={"week": week, "season": season}) from e

        invalidate_model_cache("standings")

        if not totals:
            logger.info(f"No picks found for week {week} of {season}; nothing to score")
        else:
            logger.info(
                f"Scored week {week} of {season}: {len(totals)} users, "
                f"{len(picks)} picks, {final_games}/{len(games)} games final"
            )

        return {
            "users_updated": len(totals),
            "leaderboard": weekly_leaderboard(week, season, active_only=False),
        }

    @staticmethod
    def needs_rescore(week, season):
        """
        True when the stored WeeklyScore rows no longer match the week's picks.

        That covers ungraded picks on final games, users with picks but no
        row yet, and rows whose totals predate a result entry or correction.
        """
        picks = (
            Pick.query.join(Game)
            .filter(Game.season == season, Game.week == week)
            .all()
        )
        if not picks:
            return False

        if any(pick.game.is_final and pick.is_correct is None for pick in picks):
            return True

        stored = {
            row.user_id: row
            for row in WeeklyScore.query.filter_by(week=week, season=season)
        }
        for user_id, totals in tally_picks(picks).items():
            row = stored.get(user_id)
            if row is None:
                return True
            if any(
                getattr(row, field) != totals[field]
                for field in ("correct_picks", "total_picks", "total_points", "possible_points")
            ):
                return True

        return False


def weekly_leaderboard(week, season, active_only=True):
    """WeeklyScore rows with user display fields, best first"""
    query = (
        db.session.query(WeeklyScore, User)
        .join(User, WeeklyScore.user_id == User.id)
        .filter(WeeklyScore.week == week, WeeklyScore.season == season)
    )
    if active_only:
        query = query.filter(User.is_active.is_(True))

    rows = sorted(
        query.all(),
        key=lambda row: (*weekly_rank_key(row[0]), row[1].sort_name, row[1].id),
    )

    leaderboard = []
    for score, user in rows:
        entry = score.to_dict()
        entry.update(
            {
                "username": user.username,
                "alias": user.alias,
                "first_name": user.first_name,
                "last_name": user.last_name,
            }
        )
        leaderboard.append(entry)
    return leaderboard
