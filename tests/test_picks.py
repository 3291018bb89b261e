from datetime import timedelta

import pytest

from pickem_pool.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    PicksLockedError,
    ValidationError,
)
from pickem_pool.models import Pick
from pickem_pool.services.picks import (
    delete_pick,
    replace_week_picks,
    update_pick,
    user_picks,
    week_picks,
)

SEASON = 2025


@pytest.fixture
def open_week(make_game, now):
    """Two games of week 1 that have not kicked off yet"""
    return (
        make_game(home="KC", away="BUF", kickoff=now + timedelta(days=2)),
        make_game(home="DAL", away="NYG", kickoff=now + timedelta(days=3)),
    )


def submit(game, team, **extra):
    return {"game_id": game.id, "selected_team": team, **extra}


def test_submission_replaces_open_picks(make_user, open_week):
    user = make_user()
    g1, g2 = open_week
    replace_week_picks(user, [submit(g1, "KC"), submit(g2, "DAL")])

    result = replace_week_picks(user, [submit(g1, "BUF", confidence_points=4)])

    assert result["week"] == 1
    assert result["season"] == SEASON
    stored = Pick.query.filter_by(user_id=user.id).all()
    assert [(p.game_id, p.selected_team, p.confidence_points) for p in stored] == [
        (g1.id, "BUF", 4)
    ]


def test_started_game_picks_survive_replace(make_user, make_game, make_pick, open_week):
    user = make_user()
    started = make_game(home="SF", away="SEA")
    kept = make_pick(user, started, "SF")
    g1, _ = open_week

    replace_week_picks(user, [submit(g1, "KC")])

    game_ids = {pick.game_id for pick in Pick.query.filter_by(user_id=user.id)}
    assert game_ids == {kept.game_id, g1.id}


def test_started_game_is_locked(make_user, make_game, open_week):
    user = make_user()
    started = make_game(home="SF", away="SEA")
    g1, _ = open_week

    with pytest.raises(PicksLockedError) as excinfo:
        replace_week_picks(user, [submit(g1, "KC"), submit(started, "SF")])

    assert excinfo.value.payload["expired_games"] == ["SEA @ SF"]
    assert Pick.query.count() == 0


@pytest.mark.parametrize(
    "build",
    [
        lambda g1, g2, other: [submit(g1, "KC"), submit(g1, "BUF")],
        lambda g1, g2, other: [submit(g1, "KC"), submit(other, "DAL")],
        lambda g1, g2, other: [submit(g2, "KC")],
        lambda g1, g2, other: [{"game_id": 424242, "selected_team": "KC"}],
    ],
    ids=["duplicate-game", "mixed-weeks", "team-not-playing", "unknown-game"],
)
def test_rejected_submissions_store_nothing(make_user, make_game, open_week, now, build):
    user = make_user()
    g1, g2 = open_week
    other = make_game(home="DAL", away="NYG", week=2, kickoff=now + timedelta(days=9))

    with pytest.raises(ValidationError):
        replace_week_picks(user, build(g1, g2, other))

    assert Pick.query.count() == 0


def test_update_own_pick(make_user, make_pick, open_week):
    user = make_user()
    pick = make_pick(user, open_week[0], "KC")

    update_pick(user, pick.id, selected_team="BUF", confidence_points=7)

    assert pick.selected_team == "BUF"
    assert pick.confidence_points == 7


def test_update_checks_owner_and_lock(make_user, make_game, make_pick, open_week):
    owner, stranger = make_user(), make_user()
    admin = make_user(is_admin=True)
    pick = make_pick(owner, open_week[0], "KC")

    with pytest.raises(PermissionDeniedError):
        update_pick(stranger, pick.id, selected_team="BUF")
    with pytest.raises(ValidationError):
        update_pick(owner, pick.id, selected_team="DAL")

    update_pick(admin, pick.id, tiebreaker_points=41)
    assert pick.tiebreaker_points == 41

    locked = make_pick(owner, make_game(home="SF", away="SEA"), "SF")
    with pytest.raises(PicksLockedError):
        update_pick(owner, locked.id, selected_team="SEA")


def test_delete_pick(make_user, make_game, make_pick, open_week):
    user = make_user()
    pick = make_pick(user, open_week[0], "KC")
    locked = make_pick(user, make_game(home="SF", away="SEA"), "SF")
    pick_id = pick.id

    delete_pick(user, pick_id)

    with pytest.raises(PicksLockedError):
        delete_pick(user, locked.id)
    with pytest.raises(NotFoundError):
        delete_pick(user, pick_id)
    assert [p.id for p in Pick.query.all()] == [locked.id]


def test_pick_listings(make_user, make_game, make_pick, open_week, now):
    alice, bob = make_user(username="alice"), make_user(username="bob")
    g1, g2 = open_week
    later = make_game(week=2, kickoff=now + timedelta(days=9))
    make_pick(bob, g1, "KC")
    make_pick(alice, g2, "NYG")
    make_pick(alice, later, "BUF")
    make_pick(alice, g1, "BUF")

    assert [p.game_id for p in user_picks(alice.id, SEASON)] == [g1.id, g2.id, later.id]
    assert [p.game_id for p in user_picks(alice.id, SEASON, week=2)] == [later.id]
    assert [(p.user.username, p.game_id) for p in week_picks(1, SEASON)] == [
        ("alice", g1.id),
        ("alice", g2.id),
        ("bob", g1.id),
    ]
