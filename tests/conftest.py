from datetime import datetime, timedelta, timezone

import pytest

from pickem_pool import create_app, db
from pickem_pool.models import Game, Pick, Season, User
from pickem_pool.utils.timezone_utils import to_storage

SEASON = 2025
PASSWORD = "password123"


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make_user(username=None, alias=None, is_admin=False, is_active=True):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        user = User(
            username=username,
            email=f"{username}@example.com",
            display_name=alias,
            is_admin=is_admin,
            is_active=is_active,
        )
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_game(app):
    def _make_game(home="KC", away="BUF", week=1, season=SEASON, kickoff=None):
        # Default kickoff is in the past so results can be entered
        kickoff = kickoff or datetime.now(timezone.utc) - timedelta(days=1)
        game = Game(
            season=season,
            week=week,
            home_team=home,
            away_team=away,
            game_time=to_storage(kickoff),
        )
        db.session.add(game)
        db.session.commit()
        return game

    return _make_game


@pytest.fixture
def make_pick(app):
    def _make_pick(user, game, team, confidence=1, tiebreaker=None):
        pick = Pick(
            user_id=user.id,
            game_id=game.id,
            selected_team=team,
            confidence_points=confidence,
            tiebreaker_points=tiebreaker,
        )
        db.session.add(pick)
        db.session.commit()
        return pick

    return _make_pick


@pytest.fixture
def finalize(app):
    def _finalize(game, home_score, away_score):
        game.record_result(home_score, away_score)
        db.session.commit()
        return game

    return _finalize


@pytest.fixture
def active_season(app):
    season = Season.create_season(SEASON, current_week=1)
    db.session.commit()
    season.activate()
    return season


@pytest.fixture
def login(client):
    def _login(user):
        response = client.post(
            "/auth/login", json={"username": user.username, "password": PASSWORD}
        )
        assert response.status_code == 200, response.get_json()
        return response

    return _login
