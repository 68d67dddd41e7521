import itertools
from datetime import datetime, timedelta

import pytest

from fanhub import create_app, db
from fanhub.models import Match, MatchStatus, Prediction, User, UserRole

# Wednesday; the week started Monday 2024-05-13 00:00 UTC
NOW = datetime(2024, 5, 15, 12, 0, 0)

_sequence = itertools.count(1)


@pytest.fixture
def app():
    app = create_app("testing")
    ctx = app.app_context()
    ctx.push()
    yield app
    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_user(app):
    def _make_user(name="Fan", role=UserRole.USER, picture=None, auth_id=None):
        n = next(_sequence)
        user = User(
            auth_id=auth_id or f"auth|{n}",
            email=f"fan{n}@example.com",
            name=name,
            picture=picture,
            role=role,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_match(app):
    def _make_match(home_team="Broncos", away_team="Cowboys", home_score=None,
                    away_score=None, status=MatchStatus.UPCOMING, kickoff_time=None, round=1):
        match = Match(
            home_team=home_team,
            away_team=away_team,
            home_score=home_score,
            away_score=away_score,
            status=status,
            kickoff_time=kickoff_time or NOW + timedelta(days=2),
            round=round,
            season=2024,
        )
        db.session.add(match)
        db.session.commit()
        return match

    return _make_match


@pytest.fixture
def make_prediction(app, make_match):
    """Create a prediction, on a fresh completed match unless one is given"""

    def _make_prediction(user, match=None, predicted_winner="Broncos", is_correct=None,
                         points=0, created_at=None):
        if match is None:
            match = make_match(home_score=20, away_score=10, status=MatchStatus.COMPLETED)
        prediction = Prediction(
            user_id=user.id,
            match_id=match.id,
            predicted_winner=predicted_winner,
            is_correct=is_correct,
            points=points,
            created_at=created_at or NOW - timedelta(days=30),
        )
        db.session.add(prediction)
        db.session.commit()
        return prediction

    return _make_prediction


@pytest.fixture
def auth_headers():
    """Identity-proxy headers for a stored user"""

    def _auth_headers(user):
        return {"X-Auth-Subject": user.auth_id}

    return _auth_headers
