from datetime import timedelta

from pickem_pool.models import AdminAction, Pick, WeeklyScore

SEASON = 2025


def test_health(client):
    response = client.get("/api/system/health")

    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "healthy"
    assert body["database"] == "connected"


def test_login_required_returns_json(client):
    response = client.get("/auth/me")

    assert response.status_code == 401
    assert response.get_json() == {"error": "Authentication required"}


def test_login_and_bad_password(client, make_user, login):
    user = make_user(username="casey", alias="Casey")

    bad = client.post("/auth/login", json={"username": "casey", "password": "nope"})
    assert bad.status_code == 401

    login(user)
    me = client.get("/auth/me").get_json()
    assert me["username"] == "casey"


def test_inactive_user_cannot_log_in(client, make_user):
    make_user(username="gone", is_active=False)

    response = client.post(
        "/auth/login", json={"username": "gone", "password": "password123"}
    )

    assert response.status_code == 403


def test_submit_picks(client, make_user, make_game, login, now):
    user = make_user()
    game = make_game(kickoff=now + timedelta(days=1))
    login(user)

    response = client.post(
        "/api/picks",
        json={"picks": [{"game_id": game.id, "selected_team": "kc", "tiebreaker_points": 45}]},
    )

    assert response.status_code == 201
    body = response.get_json()
    assert body["week"] == 1
    assert body["picks"][0]["selected_team"] == "KC"
    assert Pick.query.filter_by(user_id=user.id).count() == 1


def test_submit_picks_validation_details(client, make_user, login):
    login(make_user())

    response = client.post(
        "/api/picks", json={"picks": [{"game_id": 0, "selected_team": "KC"}]}
    )

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "Validation failed"
    assert body["details"][0]["field"] == "picks.0.game_id"


def test_submit_after_kickoff_is_rejected(client, make_user, make_game, login):
    game = make_game(home="SF", away="SEA")
    login(make_user())

    response = client.post(
        "/api/picks", json={"picks": [{"game_id": game.id, "selected_team": "SF"}]}
    )

    assert response.status_code == 400
    assert response.get_json()["expired_games"] == ["SEA @ SF"]


def test_picks_hidden_before_kickoff(client, make_user, make_game, login, now):
    game = make_game(kickoff=now + timedelta(hours=6))
    login(make_user())

    response = client.get(f"/api/games/{game.id}/picks")

    assert response.status_code == 403
    assert "game_date" in response.get_json()


def test_calculate_requires_admin(client, make_user, login):
    login(make_user())

    response = client.post(f"/api/scores/calculate/1?season={SEASON}")

    assert response.status_code == 403
    assert response.get_json()["error"] == "Admin access required"


def test_admin_result_then_calculate(client, make_user, make_game, make_pick, login):
    admin = make_user(alias="Boss", is_admin=True)
    player = make_user(alias="Player")
    game = make_game()
    make_pick(player, game, "KC", confidence=3)
    login(admin)

    result = client.put(
        f"/api/admin/games/{game.id}/result", json={"home_score": 24, "away_score": 17}
    )
    assert result.status_code == 200
    assert result.get_json()["game"]["winning_team"] == "KC"

    calculated = client.post(f"/api/scores/calculate/1?season={SEASON}")
    assert calculated.status_code == 200
    assert calculated.get_json()["users_updated"] == 1

    row = WeeklyScore.query.filter_by(user_id=player.id).one()
    assert (row.total_points, row.weekly_rank) == (3, 1)
    assert AdminAction.query.count() == 2

    standings = client.get(f"/api/scores/season?season={SEASON}").get_json()["standings"]
    assert [entry["alias"] for entry in standings] == ["Player", "Boss"]


def test_forecast_accepts_string_game_ids(client, make_user, make_game, make_pick, login):
    user = make_user(alias="Fan")
    game = make_game()
    make_pick(user, game, "BUF", confidence=2)
    login(user)

    response = client.post(
        "/api/tracker/forecast",
        json={
            "week": 1,
            "season": SEASON,
            "worksheet_scores": {str(game.id): {"home_score": 3, "away_score": 10}},
        },
    )

    assert response.status_code == 200
    [entry] = response.get_json()["forecast"]
    assert entry["weekly_record"] == "1-0"
    assert entry["hypothetical_points"] == 2


def test_locked_recap_is_not_an_error(client, make_user, make_game, login, now):
    make_game(kickoff=now + timedelta(days=2))
    login(make_user())

    response = client.get(f"/api/recap/week/1?season={SEASON}")

    assert response.status_code == 200
    assert response.get_json()["gated"] is True


def test_recap_unknown_week(client, make_user, login):
    login(make_user())

    response = client.get(f"/api/recap/week/9?season={SEASON}")

    assert response.status_code == 404
    assert response.get_json()["error"] == "No games found for this week"


def test_week_zero_is_rejected(client):
    response = client.get(f"/api/games/week/0?season={SEASON}")

    assert response.status_code == 400
    assert "Week" in response.get_json()["error"]


def test_unknown_route_is_json(client):
    response = client.get("/api/nowhere")

    assert response.status_code == 404
    assert response.get_json()["path"] == "/api/nowhere"


def test_current_week_from_active_season(client, active_season):
    body = client.get("/api/system/current-week").get_json()

    assert body["season"] == SEASON
    assert body["week"] == 1


def test_week_stats_endpoint(client, make_user, make_game, make_pick, finalize):
    game = make_game()
    make_pick(make_user(), game, "KC")
    finalize(game, 17, 3)

    response = client.get(f"/api/games/week/1/stats?season={SEASON}")

    assert response.status_code == 200
    body = response.get_json()
    assert body["games"]["completed"] == 1
    assert body["picks"]["accuracy_rate"] == 100.0
