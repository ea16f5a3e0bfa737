import logging
from dataclasses import dataclass
from typing import Optional

from sqlmodel import Session, select

from ..config import SCORING_BATCH_SIZE
from ..models.fixture import FINISHED, Fixture
from ..models.prediction import Prediction
from .aggregation import AggregationResult, aggregate_fixture_scores

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FixtureSnapshot:
    """The scoring-relevant fields of a fixture at one point in time."""
    status: str
    home_score: Optional[int]
    away_score: Optional[int]
    gameweek: int

    @classmethod
    def from_fixture(cls, fixture: Fixture) -> "FixtureSnapshot":
        return cls(
            status=fixture.status,
            home_score=fixture.home_score,
            away_score=fixture.away_score,
            gameweek=fixture.gameweek,
        )


@dataclass(frozen=True)
class FixtureChange:
    fixture_id: str
    before: FixtureSnapshot
    after: FixtureSnapshot


def is_finalizing_transition(change: FixtureChange) -> bool:
    """True only for a move into "finished" with both scores present."""
    return (
        change.before.status != FINISHED
        and change.after.status == FINISHED
        and change.after.home_score is not None
        and change.after.away_score is not None
    )


def load_fixture_predictions(session: Session, fixture_id: str) -> list[Prediction]:
    """All predictions for a fixture in arrival order (no gameweek filter)."""
    statement = (
        select(Prediction)
        .where(Prediction.fixture_id == fixture_id)
        .order_by(Prediction.created_at, Prediction.id)
    )
    return list(session.exec(statement).all())


def score_fixture(
    session: Session,
    fixture_id: str,
    home_score: int,
    away_score: int,
    batch_size: int = SCORING_BATCH_SIZE,
) -> AggregationResult:
    """Run the aggregation pipeline for a fixture's final score."""
    predictions = load_fixture_predictions(session, fixture_id)
    if not predictions:
        logger.info("No predictions for fixture %s, nothing to score", fixture_id)
        return AggregationResult(fixture_id=fixture_id)

    logger.info(
        "Scoring %d prediction(s) for fixture %s (%s-%s)",
        len(predictions), fixture_id, home_score, away_score
    )
    return aggregate_fixture_scores(
        session, fixture_id, predictions, home_score, away_score,
        batch_size=batch_size
    )


class FixtureFinalizationTrigger:
    """Change-feed consumer that scores a fixture when its result is final."""

    def __init__(self, batch_size: int = SCORING_BATCH_SIZE):
        self.batch_size = batch_size

    def __call__(self, session: Session, change: FixtureChange) -> Optional[AggregationResult]:
        if not is_finalizing_transition(change):
            logger.debug(
                "Ignoring change on fixture %s (%s -> %s)",
                change.fixture_id, change.before.status, change.after.status
            )
            return None

        return score_fixture(
            session,
            change.fixture_id,
            change.after.home_score,
            change.after.away_score,
            batch_size=self.batch_size,
        )
