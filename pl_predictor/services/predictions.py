import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session, select

from ..models.fixture import Fixture
from ..models.prediction import Prediction, build_prediction_id
from ..timeutils import isoformat, utcnow
from .fixtures import is_prediction_locked, load_fixture

logger = logging.getLogger(__name__)


class PredictionLockedError(ValueError):
    pass


def prediction_to_dict(prediction: Prediction) -> dict:
    return {
        "id": prediction.id,
        "user_id": prediction.user_id,
        "fixture_id": prediction.fixture_id,
        "gameweek": prediction.gameweek,
        "home_score": prediction.home_score,
        "away_score": prediction.away_score,
        "points_earned": prediction.points_earned,
        "calculated_at": isoformat(prediction.calculated_at),
        "is_submitted": prediction.is_submitted,
        "created_at": isoformat(prediction.created_at),
        "updated_at": isoformat(prediction.updated_at),
    }


def save_prediction(
    db: Session,
    user_id: str,
    fixture_id: str,
    home_score: int,
    away_score: int,
    now: Optional[datetime] = None,
) -> Prediction:
    """Create or update a user's prediction until the fixture's deadline."""
    now = now or utcnow()
    fixture = load_fixture(db, fixture_id)
    if is_prediction_locked(fixture, now):
        raise PredictionLockedError(f"Predictions for {fixture_id} are closed.")

    prediction_id = build_prediction_id(user_id, fixture.id, fixture.gameweek)
    prediction = db.get(Prediction, prediction_id)

    if prediction:
        prediction.home_score = home_score
        prediction.away_score = away_score
        prediction.updated_at = now
    else:
        prediction = Prediction(
            id=prediction_id,
            user_id=user_id,
            fixture_id=fixture.id,
            gameweek=fixture.gameweek,
            home_score=home_score,
            away_score=away_score,
            created_at=now,
            updated_at=now,
        )
    prediction.is_submitted = True

    db.add(prediction)
    db.commit()
    db.refresh(prediction)

    logger.debug("Saved prediction %s (%d-%d)", prediction.id, home_score, away_score)
    return prediction


def list_user_predictions(db: Session, user_id: str, gameweek: Optional[int] = None) -> list[Prediction]:
    statement = select(Prediction).where(Prediction.user_id == user_id)
    if gameweek is not None:
        statement = statement.where(Prediction.gameweek == gameweek)
    return list(db.exec(statement.order_by(Prediction.created_at)).all())


def get_recent_predictions(db: Session, user_id: str, limit: int = 10) -> list[dict]:
    """Latest predictions with their fixture attached."""
    statement = (
        select(Prediction, Fixture)
        .join(Fixture, Prediction.fixture_id == Fixture.id, isouter=True)
        .where(Prediction.user_id == user_id)
        .order_by(Prediction.created_at.desc())
        .limit(limit)
    )
    results = []
    for prediction, fixture in db.exec(statement).all():
        entry = prediction_to_dict(prediction)
        entry["fixture"] = {
            "home_team": fixture.home_team,
            "away_team": fixture.away_team,
            "kickoff_time": isoformat(fixture.kickoff_time),
            "status": fixture.status,
            "home_score": fixture.home_score,
            "away_score": fixture.away_score,
        } if fixture else None
        results.append(entry)
    return results


def get_prediction_progress(
    db: Session, user_id: str, gameweek: int, now: Optional[datetime] = None
) -> dict:
    """How many of a gameweek's fixtures are predicted, open or locked."""
    now = now or utcnow()
    fixtures = db.exec(select(Fixture).where(Fixture.gameweek == gameweek)).all()
    predicted = {p.fixture_id for p in list_user_predictions(db, user_id, gameweek)}

    total = len(fixtures)
    completed = sum(1 for f in fixtures if f.id in predicted)
    locked = sum(1 for f in fixtures if f.id not in predicted and is_prediction_locked(f, now))

    return {
        "total": total,
        "completed": completed,
        "remaining": total - completed - locked,
        "locked": locked,
    }
