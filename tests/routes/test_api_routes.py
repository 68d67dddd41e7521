from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from fanhub.models import MatchStatus, Prediction


@pytest.fixture
def ranked_users(make_user, make_prediction):
    alice = make_user(name="Alice", picture="https://img.example.com/alice.png")
    bob = make_user(name="Bob")
    for points in (15, 10, 0):
        make_prediction(alice, is_correct=points > 0, points=points)
    make_prediction(bob, is_correct=True, points=10)
    return alice, bob


class TestLeaderboardRoute:

    def test_anonymous_request(self, client, ranked_users):
        response = client.get("/api/leaderboard")

        assert response.status_code == 200
        data = response.get_json()
        assert data["timeframe"] == "all-time"
        assert data["currentUserRank"] is None
        assert data["pagination"] == {"limit": 100, "offset": 0, "hasMore": False}
        assert data["leaderboard"][0] == {
            "userId": ranked_users[0].id,
            "userName": "Alice",
            "userPicture": "https://img.example.com/alice.png",
            "totalPoints": 25,
            "totalPredictions": 3,
            "correctPredictions": 2,
            "accuracy": 66.7,
            "rank": 1,
            "streak": 0,
        }

    def test_includes_signed_in_users_rank(self, client, ranked_users, auth_headers):
        bob = ranked_users[1]

        data = client.get("/api/leaderboard", headers=auth_headers(bob)).get_json()

        assert data["currentUserRank"] == {"rank": 2, "totalUsers": 2}

    def test_pagination(self, client, ranked_users):
        data = client.get("/api/leaderboard?limit=1&offset=0").get_json()

        assert [e["userName"] for e in data["leaderboard"]] == ["Alice"]
        assert data["pagination"]["hasMore"] is True

    @pytest.mark.parametrize(
        "query",
        ["timeframe=invalid", "limit=0", "limit=101", "limit=ten", "offset=-5"],
    )
    def test_invalid_parameters(self, client, app, query):
        with patch(
            "fanhub.services.repository.PredictionRepository.aggregate_by_user"
        ) as aggregate:
            response = client.get(f"/api/leaderboard?{query}")

        assert response.status_code == 400
        assert "error" in response.get_json()
        aggregate.assert_not_called()

    def test_storage_failure_degrades_to_empty(self, client, app):
        with patch(
            "fanhub.services.repository.PredictionRepository.aggregate_by_user",
            side_effect=OperationalError("SELECT", {}, Exception("database is locked")),
        ):
            response = client.get("/api/leaderboard?timeframe=week&limit=10")

        assert response.status_code == 200
        assert response.get_json() == {
            "leaderboard": [],
            "currentUserRank": None,
            "timeframe": "week",
            "pagination": {"limit": 10, "offset": 0, "hasMore": False},
            "error": "Unable to load leaderboard. Please try again later.",
        }

    def test_rank_failure_keeps_leaderboard(self, client, ranked_users, auth_headers):
        with patch(
            "fanhub.services.repository.PredictionRepository.count_users_above",
            side_effect=OperationalError("SELECT", {}, Exception("timeout")),
        ):
            response = client.get("/api/leaderboard", headers=auth_headers(ranked_users[0]))

        data = response.get_json()
        assert response.status_code == 200
        assert data["currentUserRank"] is None
        assert len(data["leaderboard"]) == 2


class TestUserStatsRoute:

    def test_own_stats(self, client, ranked_users, auth_headers):
        alice = ranked_users[0]

        response = client.get(f"/api/users/{alice.id}/stats", headers=auth_headers(alice))

        assert response.status_code == 200
        data = response.get_json()
        assert data["totalPoints"] == 25
        assert data["accuracy"] == 67
        assert data["rank"]["allTime"] == 1

    def test_other_users_stats_are_forbidden(self, client, ranked_users, auth_headers):
        alice, bob = ranked_users

        response = client.get(f"/api/users/{bob.id}/stats", headers=auth_headers(alice))

        assert response.status_code == 403

    def test_forbidden_even_for_unknown_user(self, client, ranked_users, auth_headers):
        response = client.get("/api/users/9999/stats", headers=auth_headers(ranked_users[0]))

        assert response.status_code == 403

    def test_requires_authentication(self, client, ranked_users):
        response = client.get(f"/api/users/{ranked_users[0].id}/stats")

        assert response.status_code == 401


class TestPredictionRoutes:

    def test_submit(self, client, make_user, make_match, auth_headers):
        user = make_user()
        kickoff = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(days=1)
        match = make_match(kickoff_time=kickoff)

        response = client.post(
            "/api/predictions/submit",
            json={"matchId": match.id, "predictedWinner": "Cowboys"},
            headers=auth_headers(user),
        )

        assert response.status_code == 201
        data = response.get_json()
        assert data["prediction"]["predictedWinner"] == "Cowboys"
        assert data["prediction"]["match"]["homeTeam"] == "Broncos"
        assert Prediction.query.filter_by(user_id=user.id).count() == 1

    def test_submit_after_kickoff(self, client, make_user, make_match, auth_headers):
        user = make_user()
        match = make_match(kickoff_time=datetime(2020, 1, 1))

        response = client.post(
            "/api/predictions/submit",
            json={"matchId": match.id, "predictedWinner": "Broncos"},
            headers=auth_headers(user),
        )

        assert response.status_code == 409
        assert "locked" in response.get_json()["error"]

    def test_submit_missing_fields(self, client, make_user, auth_headers):
        response = client.post("/api/predictions/submit", json={}, headers=auth_headers(make_user()))

        assert response.status_code == 400

    @pytest.mark.parametrize(
        "payload",
        [
            {"matchId": True, "predictedWinner": "Broncos"},
            {"matchId": "abc", "predictedWinner": "Broncos"},
            {"matchId": 1, "predictedWinner": 42},
        ],
    )
    def test_submit_malformed_fields(self, client, make_user, make_match, auth_headers, payload):
        kickoff = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(days=1)
        make_match(kickoff_time=kickoff)

        response = client.post(
            "/api/predictions/submit", json=payload, headers=auth_headers(make_user())
        )

        assert response.status_code == 400
        assert Prediction.query.count() == 0

    def test_submit_refreshes_match_list_counts(self, client, make_user, make_match, auth_headers):
        kickoff = datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(days=1)
        match = make_match(kickoff_time=kickoff)
        assert client.get("/api/matches").get_json()["matches"][0]["predictionCount"] == 0

        client.post(
            "/api/predictions/submit",
            json={"matchId": match.id, "predictedWinner": "Broncos"},
            headers=auth_headers(make_user()),
        )

        assert client.get("/api/matches").get_json()["matches"][0]["predictionCount"] == 1

    def test_submit_unknown_match(self, client, make_user, auth_headers):
        response = client.post(
            "/api/predictions/submit",
            json={"matchId": 404, "predictedWinner": "Broncos"},
            headers=auth_headers(make_user()),
        )

        assert response.status_code == 404

    def test_submit_requires_authentication(self, client, make_match):
        response = client.post(
            "/api/predictions/submit", json={"matchId": make_match().id, "predictedWinner": "Broncos"}
        )

        assert response.status_code == 401

    def test_list_own_predictions(self, client, make_user, make_prediction, auth_headers):
        user = make_user()
        make_prediction(user, is_correct=True, points=10)
        make_prediction(make_user())

        response = client.get("/api/predictions?status=completed", headers=auth_headers(user))

        predictions = response.get_json()["predictions"]
        assert len(predictions) == 1
        assert predictions[0]["match"]["status"] == MatchStatus.COMPLETED.value
        assert predictions[0]["outcome"] == "correct"


class TestCatalogRoutes:

    def test_matches(self, client, make_match):
        make_match(round=3)
        make_match(round=4)

        response = client.get("/api/matches?round=3")

        assert response.status_code == 200
        matches = response.get_json()["matches"]
        assert [m["round"] for m in matches] == [3]
        assert matches[0]["predictionCount"] == 0

    def test_achievement_catalog(self, client, app):
        data = client.get("/api/achievements").get_json()

        assert data["categories"] == ["predictions", "accuracy", "streak", "points"]
        assert len(data["achievements"]) == 13
