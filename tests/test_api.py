from datetime import timedelta

from pl_predictor.models import UserProfile
from pl_predictor.timeutils import utcnow

FIXTURE_ID = "GW1-LIV-BOU"


def test_get_fixture(client, add_fixture):
    add_fixture(FIXTURE_ID)

    response = client.get(f"/api/fixtures/{FIXTURE_ID}")
    assert response.status_code == 200
    data = response.json()
    assert data["home_team"] == "LIV"
    assert data["away_team"] == "BOU"
    assert data["status"] == "upcoming"
    assert data["kickoff_time"].endswith("Z")

    assert client.get("/api/fixtures/GW1-XXX-YYY").status_code == 404


def test_gameweek_fixtures(client, add_fixture):
    add_fixture("GW1-LIV-BOU")
    add_fixture("GW1-MUN-ARS")
    add_fixture("GW2-ARS-LIV", gameweek=2)

    response = client.get("/api/fixtures", params={"gameweek": 1})
    assert response.status_code == 200
    assert response.json()["count"] == 2

    assert client.get("/api/fixtures", params={"gameweek": 3}).status_code == 404
    assert client.get("/api/fixtures", params={"gameweek": 39}).status_code == 422


def test_upcoming_fixtures(client, add_fixture):
    add_fixture("GW1-LIV-BOU", kickoff_time=utcnow() + timedelta(days=2))
    add_fixture("GW1-MUN-ARS", kickoff_time=utcnow() + timedelta(days=1))
    add_fixture("GW1-CHE-MCI", status="finished", home_score=1, away_score=1)

    ids = [f["id"] for f in client.get("/api/fixtures/upcoming").json()]
    assert ids == ["GW1-MUN-ARS", "GW1-LIV-BOU"]


def test_create_and_edit_profile(client):
    response = client.post("/api/users", json={"id": "u1", "display_name": "Alex"})
    assert response.status_code == 201
    assert response.json()["stats"]["totalPoints"] == 0

    assert client.post("/api/users", json={"id": "u1"}).status_code == 409

    response = client.patch("/api/users/u1", json={"favorite_team": "ARS", "show_on_leaderboard": False})
    assert response.status_code == 200
    assert response.json()["favorite_team"] == "ARS"
    assert response.json()["show_on_leaderboard"] is False

    assert client.get("/api/users/nobody").status_code == 404


def test_profile_edit_cannot_touch_stats(client, add_user):
    add_user("u1", total_points=7, correct_predictions=7, processed_predictions_count=7)

    response = client.patch("/api/users/u1", json={"display_name": "New", "stats": {"totalPoints": 99}})

    assert response.status_code == 200
    assert response.json()["display_name"] == "New"
    assert response.json()["stats"]["totalPoints"] == 7


def test_submit_and_update_prediction(client, add_fixture, add_user):
    add_fixture(FIXTURE_ID)
    add_user("u1")

    response = client.post(
        "/api/users/u1/predictions",
        json={"fixture_id": FIXTURE_ID, "home_score": 2, "away_score": 1},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == f"u1_{FIXTURE_ID}_1"
    assert data["points_earned"] is None
    assert data["calculated_at"] is None

    client.post(
        "/api/users/u1/predictions",
        json={"fixture_id": FIXTURE_ID, "home_score": 0, "away_score": 0},
    )
    predictions = client.get("/api/users/u1/predictions", params={"gameweek": 1}).json()
    assert len(predictions) == 1
    assert predictions[0]["home_score"] == 0


def test_prediction_rules(client, add_fixture, add_user):
    add_fixture(FIXTURE_ID, kickoff_time=utcnow() + timedelta(minutes=30))
    add_fixture("GW1-MUN-ARS")
    add_user("u1")

    locked = client.post(
        "/api/users/u1/predictions",
        json={"fixture_id": FIXTURE_ID, "home_score": 1, "away_score": 0},
    )
    assert locked.status_code == 400

    too_many = client.post(
        "/api/users/u1/predictions",
        json={"fixture_id": "GW1-MUN-ARS", "home_score": 21, "away_score": 0},
    )
    assert too_many.status_code == 422

    unknown = client.post(
        "/api/users/u1/predictions",
        json={"fixture_id": "GW1-XXX-YYY", "home_score": 1, "away_score": 0},
    )
    assert unknown.status_code == 404


def test_dashboard(client, add_fixture, add_user, add_prediction):
    add_fixture("GW1-LIV-BOU")
    add_fixture("GW1-MUN-ARS")
    add_fixture("GW1-CHE-MCI", kickoff_time=utcnow() + timedelta(minutes=10))
    add_user("u1", total_points=3, exact_predictions=1, processed_predictions_count=1)
    add_prediction("u1", "GW1-LIV-BOU", 2, 1)

    response = client.get("/api/users/u1/dashboard")

    assert response.status_code == 200
    data = response.json()
    assert data["gameweek"] == 1
    assert data["rank"] == 1
    assert data["progress"] == {"total": 3, "completed": 1, "remaining": 1, "locked": 1}
    assert data["recent_predictions"][0]["fixture"]["home_team"] == "LIV"
    assert data["profile"]["stats"]["totalPoints"] == 3


def test_leaderboard_order_and_visibility(client, add_user):
    add_user("u1", display_name="One", total_points=5)
    add_user("u2", display_name="Two", total_points=12)
    add_user("u3", display_name="Three", total_points=8)
    add_user("hidden", show_on_leaderboard=False, total_points=50)

    board = client.get("/leaderboard").json()

    assert [entry["uid"] for entry in board] == ["u2", "u3", "u1"]
    assert [entry["position"] for entry in board] == [1, 2, 3]
    assert board[0]["total_points"] == 12

    assert client.get("/leaderboard/users/u1/rank").json() == {"user_id": "u1", "rank": 3}
    around = client.get("/leaderboard/users/u1/around", params={"range": 1}).json()
    assert [entry["uid"] for entry in around] == ["u3", "u1"]

    stats = client.get("/leaderboard/stats").json()
    assert stats == {"total_users": 3, "average_points": 8, "top_score": 12}


def test_rank_without_points(client, add_user):
    add_user("u1")
    assert client.get("/leaderboard/users/u1/rank").json()["rank"] is None
    assert client.get("/leaderboard/users/ghost/rank").json()["rank"] is None


def test_weekly_leaderboard(client, add_fixture, add_user, add_prediction):
    add_fixture("GW1-LIV-BOU", status="finished", home_score=2, away_score=1)
    add_fixture("GW1-MUN-ARS", status="finished", home_score=0, away_score=0)
    add_user("u1")
    add_user("u2")
    add_user("u3")
    when = utcnow()
    add_prediction("u1", "GW1-LIV-BOU", 2, 1, points_earned=3, calculated_at=when)
    add_prediction("u1", "GW1-MUN-ARS", 1, 1, points_earned=1, calculated_at=when)
    add_prediction("u2", "GW1-LIV-BOU", 1, 0, points_earned=1, calculated_at=when)
    add_prediction("u3", "GW1-LIV-BOU", 0, 1, points_earned=0, calculated_at=when)

    board = client.get("/leaderboard/weekly/1").json()

    assert [(entry["uid"], entry["weekly_points"]) for entry in board] == [("u1", 4), ("u2", 1)]
    assert client.get("/leaderboard/weekly/0").status_code == 400


def test_leaderboard_refreshes_after_result(client, session, admin_headers, add_fixture, add_user, add_prediction):
    add_fixture(FIXTURE_ID)
    add_user("u1", total_points=1, correct_predictions=1, processed_predictions_count=1)
    add_user("u2", total_points=2, correct_predictions=2, processed_predictions_count=2)
    add_prediction("u1", FIXTURE_ID, 2, 1)

    assert client.get("/leaderboard").json()[0]["uid"] == "u2"

    client.post(
        "/admin/results",
        json={"fixtureId": FIXTURE_ID, "homeScore": 2, "awayScore": 1},
        headers=admin_headers,
    )

    board = client.get("/leaderboard").json()
    assert board[0]["uid"] == "u1"
    assert board[0]["total_points"] == 4
    assert session.get(UserProfile, "u1").get_stats().current_streak == 1


def test_profile_edit_rejects_null_for_required_fields(client, add_user):
    add_user("u1", display_name="Alex")

    assert client.patch("/api/users/u1", json={"display_name": None}).status_code == 422
    assert client.patch("/api/users/u1", json={"show_on_leaderboard": None}).status_code == 422
    assert client.patch("/api/users/u1", json={"display_name": ""}).status_code == 422

    profile = client.get("/api/users/u1").json()
    assert profile["display_name"] == "Alex"
    assert profile["show_on_leaderboard"] is True

    # Optional columns can still be cleared
    assert client.patch("/api/users/u1", json={"email": None}).status_code == 200


def test_profile_edit_refreshes_leaderboard(client, add_user):
    add_user("u1", display_name="Alex", total_points=5)
    add_user("u2", display_name="Sam", total_points=3)
    assert client.get("/leaderboard").json()[0]["display_name"] == "Alex"

    client.patch("/api/users/u1", json={"display_name": "Alexandra"})
    assert client.get("/leaderboard").json()[0]["display_name"] == "Alexandra"

    client.patch("/api/users/u1", json={"show_on_leaderboard": False})
    assert [entry["uid"] for entry in client.get("/leaderboard").json()] == ["u2"]


def test_hidden_user_has_no_rank(client, add_user):
    add_user("u1", total_points=9)
    add_user("u2", total_points=4, show_on_leaderboard=False)

    assert client.get("/leaderboard/users/u2/rank").json()["rank"] is None
    assert client.get("/leaderboard/users/u2/around").json() == []
    assert client.get("/leaderboard/users/u1/rank").json()["rank"] == 1
