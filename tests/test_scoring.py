import pytest
from sqlalchemy.exc import OperationalError

from pickem_pool import db
from pickem_pool.exceptions import ScoringError
from pickem_pool.models import Pick, WeeklyScore
from pickem_pool.services.admin import record_game_result
from pickem_pool.utils.scoring import ScoringEngine, weekly_leaderboard

SEASON = 2025


def scores_by_user(week, season=SEASON):
    return {
        row.user_id: row
        for row in WeeklyScore.query.filter_by(week=week, season=season)
    }


def test_weighted_picks_and_ranks(make_user, make_game, make_pick, finalize):
    alice, bob = make_user(alias="Alice"), make_user(alias="Bob")
    g1 = make_game(home="KC", away="BUF", week=3)
    g2 = make_game(home="DAL", away="NYG", week=3)
    make_pick(alice, g1, "KC", confidence=10)
    make_pick(alice, g2, "DAL", confidence=5)
    make_pick(bob, g1, "KC", confidence=10)
    make_pick(bob, g2, "NYG", confidence=5)
    finalize(g1, 27, 20)
    finalize(g2, 31, 17)

    result = ScoringEngine().recompute(3, SEASON)

    assert result["users_updated"] == 2
    rows = scores_by_user(3)
    assert (rows[alice.id].correct_picks, rows[alice.id].total_points) == (2, 15)
    assert (rows[bob.id].correct_picks, rows[bob.id].total_points) == (1, 10)
    assert rows[alice.id].weekly_rank == 1
    assert rows[bob.id].weekly_rank == 2
    assert rows[bob.id].win_percentage == 50.0
    assert [entry["user_id"] for entry in result["leaderboard"]] == [alice.id, bob.id]


def test_ties_share_rank_and_next_rank_skips(make_user, make_game, make_pick, finalize):
    game = make_game()
    users = [make_user() for _ in range(4)]
    for user in users[:3]:
        make_pick(user, game, "KC", confidence=20)
    make_pick(users[3], game, "KC", confidence=15)
    finalize(game, 24, 21)

    ScoringEngine().recompute(1, SEASON)

    rows = scores_by_user(1)
    assert sorted(rows[user.id].weekly_rank for user in users) == [1, 1, 1, 4]


def test_exact_tie_counts_for_nobody(make_user, make_game, make_pick, finalize):
    home_fan, away_fan = make_user(), make_user()
    game = make_game()
    make_pick(home_fan, game, "KC", confidence=3)
    make_pick(away_fan, game, "BUF", confidence=3)
    finalize(game, 20, 20)

    ScoringEngine().recompute(1, SEASON)

    for pick in Pick.query.all():
        assert pick.is_correct is False
        assert pick.points_earned == 0
    rows = scores_by_user(1)
    assert rows[home_fan.id].total_points == 0
    assert rows[home_fan.id].weekly_rank == rows[away_fan.id].weekly_rank == 1


def test_total_picks_include_unfinished_games(make_user, make_game, make_pick, finalize):
    user = make_user()
    done = make_game(home="KC", away="BUF")
    pending = make_game(home="DAL", away="NYG")
    make_pick(user, done, "KC", confidence=4)
    open_pick = make_pick(user, pending, "DAL", confidence=6)
    finalize(done, 30, 10)

    ScoringEngine().recompute(1, SEASON)

    row = scores_by_user(1)[user.id]
    assert row.total_picks == 2
    assert row.correct_picks == 1
    assert row.possible_points == 4
    assert row.win_percentage == 50.0
    assert open_pick.is_correct is None


def test_recompute_is_idempotent(make_user, make_game, make_pick, finalize):
    users = [make_user() for _ in range(3)]
    game = make_game()
    make_pick(users[0], game, "KC", confidence=2)
    make_pick(users[1], game, "BUF", confidence=2)
    make_pick(users[2], game, "KC", confidence=1)
    finalize(game, 14, 7)

    engine = ScoringEngine()
    engine.recompute(1, SEASON)
    first = {uid: row.to_dict() for uid, row in scores_by_user(1).items()}
    engine.recompute(1, SEASON)
    db.session.expire_all()
    second = {uid: row.to_dict() for uid, row in scores_by_user(1).items()}

    assert first == second
    assert WeeklyScore.query.count() == 3


def test_recompute_picks_up_changed_result(make_user, make_game, make_pick, finalize):
    user = make_user()
    game = make_game()
    make_pick(user, game, "BUF", confidence=5)
    finalize(game, 21, 3)
    ScoringEngine().recompute(1, SEASON)
    assert scores_by_user(1)[user.id].total_points == 0

    finalize(game, 3, 21)
    ScoringEngine().recompute(1, SEASON)
    db.session.expire_all()

    assert scores_by_user(1)[user.id].total_points == 5
    assert WeeklyScore.query.count() == 1


def test_no_picks_is_a_noop(make_game):
    make_game()

    result = ScoringEngine().recompute(1, SEASON)

    assert result == {"users_updated": 0, "leaderboard": []}
    assert WeeklyScore.query.count() == 0


def test_store_failure_rolls_back(monkeypatch, make_user, make_game, make_pick, finalize):
    user = make_user()
    game = make_game()
    make_pick(user, game, "KC")
    finalize(game, 10, 7)

    def failing_upsert(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(WeeklyScore, "upsert", failing_upsert)

    with pytest.raises(ScoringError) as excinfo:
        ScoringEngine().recompute(1, SEASON)

    assert excinfo.value.status_code == 500
    assert excinfo.value.payload == {"week": 1, "season": SEASON}
    assert WeeklyScore.query.count() == 0


def test_needs_rescore(make_user, make_game, make_pick, finalize):
    user = make_user()
    game = make_game()
    finalize(game, 17, 10)
    assert ScoringEngine.needs_rescore(1, SEASON) is False

    # Pick stored after the result was entered is still ungraded
    make_pick(user, game, "KC")
    assert ScoringEngine.needs_rescore(1, SEASON) is True

    ScoringEngine().recompute(1, SEASON)
    assert ScoringEngine.needs_rescore(1, SEASON) is False


def test_leaderboard_hides_inactive_users(make_user, make_game, make_pick, finalize):
    active, gone = make_user(alias="Active"), make_user(alias="Gone")
    game = make_game()
    make_pick(active, game, "KC")
    make_pick(gone, game, "KC")
    finalize(game, 10, 7)
    ScoringEngine().recompute(1, SEASON)

    gone.is_active = False
    db.session.commit()

    assert [entry["alias"] for entry in weekly_leaderboard(1, SEASON)] == ["Active"]
    assert len(weekly_leaderboard(1, SEASON, active_only=False)) == 2


def test_result_entry_marks_week_stale(make_user, make_game, make_pick):
    admin = make_user(is_admin=True)
    player = make_user()
    game = make_game()
    make_pick(player, game, "KC", confidence=4)

    record_game_result(admin, game.id, 24, 10)
    assert ScoringEngine.needs_rescore(1, SEASON) is True

    ScoringEngine().recompute(1, SEASON)
    assert ScoringEngine.needs_rescore(1, SEASON) is False

    # A corrected score regrades the picks but leaves the stored totals behind
    record_game_result(admin, game.id, 10, 24)
    assert ScoringEngine.needs_rescore(1, SEASON) is True

    ScoringEngine().recompute(1, SEASON)
    db.session.expire_all()
    assert scores_by_user(1)[player.id].total_points == 0
    assert ScoringEngine.needs_rescore(1, SEASON) is False
