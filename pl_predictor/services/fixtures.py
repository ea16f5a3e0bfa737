import logging
from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Session, select

from ..config import PREDICTION_DEADLINE_OFFSET
from ..models.fixture import FINISHED, LIVE, UPCOMING, Fixture
from ..scoring import parse_score
from ..timeutils import isoformat, to_naive_utc, utcnow
from .cache import QueryCache
from .triggers import FixtureChange, FixtureSnapshot

logger = logging.getLogger(__name__)

fixture_cache = QueryCache("fixtures")


class FixtureNotFoundError(LookupError):
    pass


class FixtureStateError(ValueError):
    """The fixture's status does not allow the requested change."""


def fixture_to_dict(fixture: Fixture) -> dict:
    return {
        "id": fixture.id,
        "home_team": fixture.home_team,
        "away_team": fixture.away_team,
        "kickoff_time": isoformat(fixture.kickoff_time),
        "prediction_deadline": isoformat(fixture.prediction_deadline),
        "gameweek": fixture.gameweek,
        "status": fixture.status,
        "home_score": fixture.home_score,
        "away_score": fixture.away_score,
    }


def load_fixture(db: Session, fixture_id: str) -> Fixture:
    fixture = db.get(Fixture, fixture_id)
    if not fixture:
        raise FixtureNotFoundError(f"Fixture {fixture_id} not found.")
    return fixture


def get_fixture(db: Session, fixture_id: str) -> dict:
    """Fixture lookup by id (cached)."""
    return fixture_cache.get_or_load(
        ("id", fixture_id),
        lambda: fixture_to_dict(load_fixture(db, fixture_id))
    )


def list_gameweek_fixtures(db: Session, gameweek: int) -> list[dict]:
    """All fixtures of a gameweek in kickoff order (cached)."""
    def load():
        statement = (
            select(Fixture)
            .where(Fixture.gameweek == gameweek)
            .order_by(Fixture.kickoff_time, Fixture.id)
        )
        return [fixture_to_dict(f) for f in db.exec(statement).all()]

    return fixture_cache.get_or_load(("gameweek", gameweek), load)


def list_upcoming_fixtures(db: Session, limit: int = 5, now: Optional[datetime] = None) -> list[dict]:
    now = now or utcnow()
    statement = (
        select(Fixture)
        .where(Fixture.status == UPCOMING, Fixture.kickoff_time > now)
        .order_by(Fixture.kickoff_time)
        .limit(limit)
    )
    return [fixture_to_dict(f) for f in db.exec(statement).all()]


def is_prediction_locked(fixture: Fixture, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return fixture.status != UPCOMING or now >= fixture.prediction_deadline


def enter_result(db: Session, fixture_id: str, home_score, away_score) -> FixtureChange:
    """
    Record a final score.

    Both scores and the finished status go out in a single commit so the
    change feed sees one consistent transition.
    """
    home_score = parse_score(home_score)
    away_score = parse_score(away_score)

    fixture = load_fixture(db, fixture_id)
    if fixture.is_finished:
        raise FixtureStateError(f"Fixture {fixture_id} is already finished.")

    before = FixtureSnapshot.from_fixture(fixture)

    fixture.home_score = home_score
    fixture.away_score = away_score
    fixture.status = FINISHED
    fixture.updated_at = utcnow()

    db.add(fixture)
    db.commit()
    db.refresh(fixture)

    logger.info(
        "Result entered for %s: %s %d-%d %s",
        fixture_id, fixture.home_team, home_score, away_score, fixture.away_team
    )
    return FixtureChange(fixture_id, before, FixtureSnapshot.from_fixture(fixture))


def set_fixture_status(db: Session, fixture_id: str, status: str) -> FixtureChange:
    """Move a fixture between upcoming and live. Finishing needs a result."""
    if status not in (UPCOMING, LIVE):
        raise FixtureStateError(
            f"Status must be '{UPCOMING}' or '{LIVE}'; submit a result to finish a fixture."
        )

    fixture = load_fixture(db, fixture_id)
    if fixture.is_finished:
        raise FixtureStateError(f"Fixture {fixture_id} is already finished.")

    before = FixtureSnapshot.from_fixture(fixture)
    fixture.status = status
    fixture.updated_at = utcnow()
    db.add(fixture)
    db.commit()
    db.refresh(fixture)

    logger.info("Fixture %s status %s -> %s", fixture_id, before.status, status)
    return FixtureChange(fixture_id, before, FixtureSnapshot.from_fixture(fixture))


def parse_kickoff_time(value) -> datetime:
    """Accept an ISO 8601 string or a Unix timestamp in milliseconds."""
    if isinstance(value, bool):
        raise ValueError("Invalid date format. Please provide ISO string or Unix timestamp.")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            raise ValueError("Timestamp out of range.") from None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_naive_utc(datetime.fromisoformat(text))
        except ValueError:
            raise ValueError(
                "Invalid date format. Please provide a valid ISO date string."
            ) from None
    raise ValueError("Invalid date format. Please provide ISO string or Unix timestamp.")


def update_schedule(
    db: Session,
    fixture_id: str,
    new_kickoff_time: datetime,
    reason: str = "Manual schedule update",
) -> tuple[FixtureChange, dict]:
    """Move a fixture's kickoff; the prediction deadline follows it."""
    fixture = load_fixture(db, fixture_id)
    if fixture.is_finished:
        raise FixtureStateError("Cannot update schedule for a finished fixture.")

    before = FixtureSnapshot.from_fixture(fixture)
    now = utcnow()
    old_kickoff = fixture.kickoff_time
    old_deadline = fixture.prediction_deadline
    new_deadline = new_kickoff_time - PREDICTION_DEADLINE_OFFSET

    fixture.kickoff_time = new_kickoff_time
    fixture.prediction_deadline = new_deadline
    fixture.updated_at = now
    # Reassign so the JSON column is flagged dirty
    fixture.schedule_history = list(fixture.schedule_history or []) + [{
        "oldKickoffTime": isoformat(old_kickoff),
        "newKickoffTime": isoformat(new_kickoff_time),
        "updatedAt": isoformat(now),
        "reason": reason,
    }]

    db.add(fixture)
    db.commit()
    db.refresh(fixture)

    summary = {
        "id": fixture.id,
        "home_team": fixture.home_team,
        "away_team": fixture.away_team,
        "old_kickoff_time": isoformat(old_kickoff),
        "new_kickoff_time": isoformat(new_kickoff_time),
        "old_prediction_deadline": isoformat(old_deadline),
        "new_prediction_deadline": isoformat(new_deadline),
    }
    logger.info(
        "Updated fixture %s schedule: %s vs %s, kickoff %s -> %s",
        fixture_id, fixture.home_team, fixture.away_team,
        summary["old_kickoff_time"], summary["new_kickoff_time"]
    )
    return FixtureChange(fixture_id, before, FixtureSnapshot.from_fixture(fixture)), summary
