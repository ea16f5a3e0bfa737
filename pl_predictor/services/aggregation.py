"""
Batched scoring of a finalized fixture's predictions.

Each prediction that has not been scored yet produces two writes: its own
``pointsEarned``/``calculatedAt`` and the owning user's ``stats`` block. The
two writes always share a batch, and a batch never exceeds the configured
operation limit. Batches commit one after another in the order the
predictions were enumerated.

Inside a batch's transaction each prediction is claimed with a conditional
UPDATE that only matches while it is still unscored, so a redelivered or
concurrent run cannot score the same prediction twice. The profile is then
re-read under a row lock, which makes every stats update a serialized
read-modify-write per user.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..config import SCORING_BATCH_SIZE
from ..models.prediction import Prediction
from ..models.user import UserProfile
from ..scoring import ScoreParseError, calculate_points
from ..timeutils import utcnow
from .stats import apply_points

logger = logging.getLogger(__name__)

WRITES_PER_PREDICTION = 2


class BatchCommitError(RuntimeError):
    """A scoring batch failed to commit; earlier batches stay committed."""

    def __init__(self, fixture_id: str, batch_index: int, result: "AggregationResult"):
        super().__init__(
            f"Scoring batch {batch_index} for fixture {fixture_id} failed "
            f"after {result.batches_committed} committed batch(es)"
        )
        self.fixture_id = fixture_id
        self.batch_index = batch_index
        self.result = result


@dataclass
class StagedScore:
    prediction_id: str
    user_id: str
    points: int
    calculated_at: datetime


@dataclass
class AggregationResult:
    fixture_id: str
    scored: int = 0
    skipped: int = 0
    failed: List[str] = field(default_factory=list)
    batches_committed: int = 0
    writes: int = 0


class ScoringBatch:
    """Staged scoring writes committed together in one transaction."""

    def __init__(self, max_operations: int = SCORING_BATCH_SIZE):
        if max_operations < WRITES_PER_PREDICTION:
            raise ValueError(
                f"Batch size must allow at least {WRITES_PER_PREDICTION} writes"
            )
        self.max_operations = max_operations
        self.entries: List[StagedScore] = []

    @property
    def operations(self) -> int:
        return len(self.entries) * WRITES_PER_PREDICTION

    def has_room(self) -> bool:
        return self.operations + WRITES_PER_PREDICTION <= self.max_operations

    def add(self, entry: StagedScore) -> None:
        if not self.has_room():
            raise ValueError("Scoring batch is full")
        self.entries.append(entry)

    def commit(self, session: Session) -> int:
        """Apply staged writes and commit. Returns how many were applied."""
        applied = 0
        for entry in self.entries:
            if not claim_prediction(session, entry):
                # Scored by another run since it was enumerated
                continue

            profile = session.get(
                UserProfile, entry.user_id,
                with_for_update=True, populate_existing=True
            )
            if profile is None:
                logger.warning(
                    "No profile for user %s, creating one with default stats",
                    entry.user_id
                )
                profile = UserProfile(id=entry.user_id, display_name=entry.user_id)

            profile.stats = apply_points(profile.get_stats(), entry.points).to_document()
            session.add(profile)

            # Later entries for the same user must read this update
            session.flush()
            applied += 1

        session.commit()
        return applied


def claim_prediction(session: Session, entry: StagedScore) -> bool:
    """
    Write a prediction's points only if it is still unscored.

    The check and the write are one conditional UPDATE, so of two runs racing
    on the same prediction exactly one sees a matched row. The claiming
    transaction holds the row (the whole database on SQLite) until commit.
    """
    statement = (
        update(Prediction)
        .where(
            Prediction.id == entry.prediction_id,
            or_(
                Prediction.points_earned == None,  # noqa: E711
                Prediction.calculated_at == None,  # noqa: E711
            ),
        )
        .values(
            points_earned=entry.points,
            calculated_at=entry.calculated_at,
            updated_at=entry.calculated_at,
        )
    )
    return session.connection().execute(statement).rowcount == 1


def stage_scores(
    predictions: Iterable[Prediction],
    home_score,
    away_score,
    result: AggregationResult,
    batch_size: int = SCORING_BATCH_SIZE,
    calculated_at: Optional[datetime] = None,
) -> List[ScoringBatch]:
    """Score predictions and group the resulting writes into batches."""
    calculated_at = calculated_at or utcnow()
    batches: List[ScoringBatch] = []
    current = ScoringBatch(batch_size)

    for prediction in predictions:
        if prediction.is_scored:
            result.skipped += 1
            continue

        try:
            points = calculate_points(
                prediction.home_score, prediction.away_score, home_score, away_score
            )
        except ScoreParseError as exc:
            logger.warning("Skipping prediction %s: %s", prediction.id, exc)
            result.failed.append(prediction.id)
            continue

        if not current.has_room():
            batches.append(current)
            current = ScoringBatch(batch_size)

        current.add(StagedScore(
            prediction_id=prediction.id,
            user_id=prediction.user_id,
            points=points,
            calculated_at=calculated_at,
        ))

    if current.entries:
        batches.append(current)
    return batches


def aggregate_fixture_scores(
    session: Session,
    fixture_id: str,
    predictions: Iterable[Prediction],
    home_score,
    away_score,
    batch_size: int = SCORING_BATCH_SIZE,
    calculated_at: Optional[datetime] = None,
) -> AggregationResult:
    """
    Score every unscored prediction of a finalized fixture and fold the
    points into each owner's stats.

    Raises BatchCommitError on the first batch that fails to commit; later
    batches are left for a rerun.
    """
    result = AggregationResult(fixture_id=fixture_id)
    batches = stage_scores(
        predictions, home_score, away_score, result,
        batch_size=batch_size, calculated_at=calculated_at
    )

    for index, batch in enumerate(batches):
        try:
            applied = batch.commit(session)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(
                "Failed to commit scoring batch %d/%d for fixture %s: %s",
                index + 1, len(batches), fixture_id, exc
            )
            raise BatchCommitError(fixture_id, index, result) from exc

        result.batches_committed += 1
        result.scored += applied
        result.skipped += len(batch.entries) - applied
        result.writes += applied * WRITES_PER_PREDICTION

    logger.info(
        "Scored fixture %s: %d scored, %d skipped, %d failed, %d batch(es)",
        fixture_id, result.scored, result.skipped, len(result.failed),
        result.batches_committed
    )
    return result
