from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from main import app
from pl_predictor.config import ADMIN_API_KEY, ADMIN_HEADER_NAME, PREDICTION_DEADLINE_OFFSET
from pl_predictor.database import get_session
from pl_predictor.dependencies import get_change_feed
from pl_predictor.models import Fixture, Prediction, UserProfile, UserStats
from pl_predictor.models.prediction import build_prediction_id
from pl_predictor.services.cache import clear_all_caches
from pl_predictor.services.change_feed import build_change_feed
from pl_predictor.timeutils import utcnow

# Create in-memory database for testing
TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(autouse=True)
def clear_caches():
    clear_all_caches()
    yield
    clear_all_caches()


@pytest.fixture(name="engine")
def engine_fixture():
    return engine


@pytest.fixture(name="session")
def session_fixture():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="feed")
def feed_fixture(session: Session):
    return build_change_feed(engine)


@pytest.fixture(name="client")
def client_fixture(session: Session, feed):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_change_feed] = lambda: feed
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="admin_headers")
def admin_headers_fixture():
    return {ADMIN_HEADER_NAME: ADMIN_API_KEY}


@pytest.fixture(name="add_fixture")
def add_fixture_fixture(session: Session):
    """Insert a fixture; kicks off a week from now unless told otherwise."""
    def add(fixture_id="GW1-ARS-CHE", gameweek=1, status="upcoming",
            home_score=None, away_score=None, kickoff_time=None,
            home_team=None, away_team=None):
        kickoff_time = kickoff_time or utcnow() + timedelta(days=7)
        _, home, away = fixture_id.split("-")
        fixture = Fixture(
            id=fixture_id,
            home_team=home_team or home,
            away_team=away_team or away,
            kickoff_time=kickoff_time,
            prediction_deadline=kickoff_time - PREDICTION_DEADLINE_OFFSET,
            gameweek=gameweek,
            status=status,
            home_score=home_score,
            away_score=away_score,
        )
        session.add(fixture)
        session.commit()
        session.refresh(fixture)
        return fixture

    return add


@pytest.fixture(name="add_user")
def add_user_fixture(session: Session):
    def add(user_id="u1", display_name=None, show_on_leaderboard=True, **stats):
        profile = UserProfile(
            id=user_id,
            display_name=display_name or user_id,
            show_on_leaderboard=show_on_leaderboard,
            stats=UserStats(**stats).to_document(),
        )
        session.add(profile)
        session.commit()
        session.refresh(profile)
        return profile

    return add


@pytest.fixture(name="add_prediction")
def add_prediction_fixture(session: Session):
    def add(user_id, fixture_id, home_score, away_score, gameweek=1,
            points_earned=None, calculated_at=None, created_at=None):
        prediction = Prediction(
            id=build_prediction_id(user_id, fixture_id, gameweek),
            user_id=user_id,
            fixture_id=fixture_id,
            gameweek=gameweek,
            home_score=home_score,
            away_score=away_score,
            points_earned=points_earned,
            calculated_at=calculated_at,
            created_at=created_at or utcnow(),
        )
        session.add(prediction)
        session.commit()
        session.refresh(prediction)
        return prediction

    return add
