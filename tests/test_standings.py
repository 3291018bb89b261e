from datetime import timedelta

import pytest

from pickem_pool import cache, db
from pickem_pool.exceptions import ValidationError
from pickem_pool.services.admin import create_user
from pickem_pool.services.standings import (
    league_summary,
    season_standings,
    user_score_history,
    week_stats,
)
from pickem_pool.utils.scoring import ScoringEngine

SEASON = 2025


def play_week(week, results, make_game, make_pick, finalize):
    """results: [(user, confidence, picked_winner), ...] on one game"""
    game = make_game(home="KC", away="BUF", week=week)
    for user, confidence, picked_winner in results:
        make_pick(user, game, "KC" if picked_winner else "BUF", confidence=confidence)
    finalize(game, 28, 14)
    ScoringEngine().recompute(week, SEASON)


def test_totals_are_sums_of_weeks(make_user, make_game, make_pick, finalize):
    alice, bob = make_user(alias="Alice"), make_user(alias="Bob")
    play_week(1, [(alice, 5, True), (bob, 5, False)], make_game, make_pick, finalize)
    play_week(2, [(alice, 3, True), (bob, 7, True)], make_game, make_pick, finalize)

    standings = {entry["user_id"]: entry for entry in season_standings(SEASON)}

    assert standings[alice.id]["total_correct"] == 2
    assert standings[alice.id]["total_points"] == 8
    assert standings[alice.id]["weeks_played"] == 2
    assert standings[bob.id]["total_correct"] == 1
    assert standings[bob.id]["total_points"] == 7
    assert standings[alice.id]["season_rank"] == 1
    assert standings[bob.id]["season_rank"] == 2
    assert standings[bob.id]["season_win_percentage"] == 50.0


def test_equal_totals_share_season_rank(make_user, make_game, make_pick, finalize):
    zed, amy, cal = make_user(alias="zed"), make_user(alias="Amy"), make_user(alias="Cal")
    play_week(
        1, [(zed, 4, True), (amy, 4, True), (cal, 1, True)], make_game, make_pick, finalize
    )

    standings = season_standings(SEASON)

    assert [(e["alias"], e["season_rank"]) for e in standings] == [
        ("Amy", 1),
        ("zed", 1),
        ("Cal", 3),
    ]


def test_membership_rules(make_user, make_game, make_pick, finalize):
    player = make_user(alias="Player")
    make_user(alias="Lurker")
    commissioner = make_user(alias="Commish", is_admin=True)
    retired = make_user(alias="Retired")
    play_week(1, [(player, 1, True), (retired, 1, True)], make_game, make_pick, finalize)

    retired.is_active = False
    db.session.commit()

    standings = season_standings(SEASON)
    aliases = [entry["alias"] for entry in standings]

    assert aliases == ["Player", "Commish"]
    commish = standings[1]
    assert commish["user_id"] == commissioner.id
    assert commish["weeks_played"] == 0
    assert commish["season_win_percentage"] == 0.0


def test_other_seasons_are_ignored(make_user, make_game, make_pick, finalize):
    user = make_user()
    play_week(1, [(user, 2, True)], make_game, make_pick, finalize)

    assert season_standings(SEASON + 1) == []


def test_user_score_history(make_user, make_game, make_pick, finalize):
    alice, bob = make_user(alias="Alice"), make_user(alias="Bob")
    play_week(1, [(alice, 1, False), (bob, 1, True)], make_game, make_pick, finalize)
    play_week(2, [(alice, 9, True), (bob, 1, True)], make_game, make_pick, finalize)

    history = user_score_history(alice.id, SEASON)

    assert [row["week"] for row in history["weekly_scores"]] == [1, 2]
    summary = history["season_summary"]
    assert summary["weeks_played"] == 2
    assert summary["total_points"] == 9
    assert summary["total_correct"] == 1
    assert summary["total_games"] == 2
    assert summary["season_win_percentage"] == 50.0
    assert summary["season_rank"] == 1


def test_league_summary(make_user, make_game, make_pick, finalize):
    alice, bob = make_user(alias="Alice"), make_user(alias="Bob")
    play_week(1, [(alice, 1, True), (bob, 1, False)], make_game, make_pick, finalize)
    play_week(2, [(alice, 1, True)], make_game, make_pick, finalize)

    summary = league_summary(SEASON)

    assert summary["league_summary"] == {
        "total_users": 2,
        "weeks_completed": 2,
        "total_picks_made": 3,
        "total_correct_picks": 2,
        "league_accuracy": 66.67,
    }
    assert [entry["alias"] for entry in summary["top_performers"]] == ["Alice", "Bob"]
    assert [week["week"] for week in summary["recent_weeks"]] == [2, 1]
    assert summary["recent_weeks"][0]["participants"] == 1


def test_week_stats(make_user, make_game, make_pick, finalize, now):
    alice, bob = make_user(), make_user()
    done = make_game(home="KC", away="BUF", kickoff=now - timedelta(hours=4))
    live = make_game(home="DAL", away="NYG", kickoff=now - timedelta(hours=1))
    make_game(home="SF", away="SEA", kickoff=now + timedelta(hours=3))
    make_game(week=2)
    live.status = "in_progress"
    db.session.commit()
    make_pick(alice, done, "KC")
    make_pick(alice, live, "DAL")
    make_pick(bob, done, "BUF")
    finalize(done, 21, 17)

    stats = week_stats(1, SEASON)

    assert {k: v for k, v in stats["games"].items() if k not in ("first_game", "last_game")} == {
        "total": 3,
        "completed": 1,
        "live": 1,
        "scheduled": 1,
    }
    assert stats["games"]["first_game"] < stats["games"]["last_game"]
    assert stats["picks"] == {
        "users_with_picks": 2,
        "total_picks": 3,
        "correct_picks": 1,
        "accuracy_rate": 33.33,
    }


def test_week_stats_for_empty_week(app):
    stats = week_stats(5, SEASON)

    assert stats["games"]["total"] == 0
    assert stats["games"]["first_game"] is None
    assert stats["picks"]["accuracy_rate"] == 0.0


def test_new_admin_appears_in_cached_standings(app):
    cache.init_app(app, config={"CACHE_TYPE": "SimpleCache"})
    assert season_standings(SEASON) == []

    create_user(None, "commish", "commish@example.com", "secret123", is_admin=True)

    assert [entry["username"] for entry in season_standings(SEASON)] == ["commish"]


def test_duplicate_user_is_rejected(app):
    create_user(None, "dup", "dup@example.com", "secret123")

    with pytest.raises(ValidationError):
        create_user(None, "dup", "other@example.com", "secret123")
