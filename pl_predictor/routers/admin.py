import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlmodel import Session

from ..config import DATA_DIR
from ..database import get_session
from ..dependencies import get_change_feed, require_admin
from ..scoring import ScoreParseError
from ..services.aggregation import AggregationResult, BatchCommitError
from ..services.cache import clear_all_caches
from ..services.change_feed import ChangeFeed
from ..services.fixtures import (
    FixtureNotFoundError,
    FixtureStateError,
    enter_result,
    fixture_to_dict,
    load_fixture,
    parse_kickoff_time,
    set_fixture_status,
    update_schedule,
)
from ..services.imports import (
    ImportFileError,
    import_fixtures,
    import_predictions,
    import_teams,
    load_json,
)
from ..services.triggers import FixtureChange, score_fixture

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResultEntry(CamelModel):
    """Body of a final-score submission."""
    fixture_id: str
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)


class ScheduleUpdate(CamelModel):
    fixture_id: str
    # ISO 8601 string or Unix timestamp in milliseconds
    new_kickoff_time: Union[int, float, str]


class StatusUpdate(BaseModel):
    status: str


def scoring_summary(result: Optional[AggregationResult]) -> Optional[dict]:
    if result is None:
        return None
    return {
        "scored": result.scored,
        "skipped": result.skipped,
        "failed": result.failed,
        "batches": result.batches_committed,
        "writes": result.writes,
    }


def publish(feed: ChangeFeed, change: FixtureChange) -> Optional[AggregationResult]:
    """
    Deliver a committed change; returns the scoring outcome if any ran.

    Raises BatchCommitError once every subscriber has run if scoring stopped
    on a failed batch.
    """
    scoring = None
    for outcome in feed.publish(change):
        if isinstance(outcome, BatchCommitError):
            raise outcome
        if isinstance(outcome, AggregationResult):
            scoring = outcome
    return scoring


@router.post("/results")
async def submit_result(
    entry: ResultEntry,
    db: Session = Depends(get_session),
    feed: ChangeFeed = Depends(get_change_feed)
):
    """Record a final score; scoring follows through the change feed."""
    try:
        change = enter_result(db, entry.fixture_id, entry.home_score, entry.away_score)
    except FixtureNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except FixtureStateError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ScoreParseError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        result = publish(feed, change)
    except BatchCommitError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=(
                f"Result recorded for {entry.fixture_id}, but scoring stopped: {exc}. "
                f"Rerun POST /admin/fixtures/{entry.fixture_id}/rescore to finish."
            )
        )

    return {
        "success": True,
        "message": f"Result recorded for {entry.fixture_id}",
        "fixture": fixture_to_dict(load_fixture(db, entry.fixture_id)),
        "scoring": scoring_summary(result),
    }


@router.post("/schedule")
async def update_fixture_schedule(
    update: ScheduleUpdate,
    db: Session = Depends(get_session),
    feed: ChangeFeed = Depends(get_change_feed)
):
    try:
        new_kickoff = parse_kickoff_time(update.new_kickoff_time)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        change, summary = update_schedule(db, update.fixture_id, new_kickoff)
    except FixtureNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except FixtureStateError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    publish(feed, change)

    return {
        "success": True,
        "message": f"Successfully updated schedule for {update.fixture_id}",
        "fixture": summary,
    }


@router.post("/fixtures/{fixture_id}/status")
async def update_fixture_status(
    fixture_id: str,
    update: StatusUpdate,
    db: Session = Depends(get_session),
    feed: ChangeFeed = Depends(get_change_feed)
):
    try:
        change = set_fixture_status(db, fixture_id, update.status)
    except FixtureNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except FixtureStateError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    publish(feed, change)
    return {"success": True, "fixture": fixture_to_dict(load_fixture(db, fixture_id))}


@router.post("/fixtures/{fixture_id}/rescore")
async def rescore_fixture(
    fixture_id: str,
    db: Session = Depends(get_session)
):
    """Rerun scoring for a finished fixture. Already scored predictions are skipped."""
    try:
        fixture = load_fixture(db, fixture_id)
    except FixtureNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    if not fixture.is_finished:
        raise HTTPException(status_code=400, detail=f"Fixture {fixture_id} is not finished.")

    try:
        result = score_fixture(db, fixture.id, fixture.home_score, fixture.away_score)
    except BatchCommitError as exc:
        clear_all_caches()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{exc}; rerun to finish scoring"
        )

    clear_all_caches()
    return {"success": True, "fixture_id": fixture_id, "scoring": scoring_summary(result)}


# Imports
@router.post("/import/teams")
async def import_teams_endpoint(db: Session = Depends(get_session)):
    try:
        count = import_teams(db, load_json(DATA_DIR / "teams.json"))
    except ImportFileError as exc:
        logger.error("Error importing teams: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    clear_all_caches()
    return {"success": True, "message": f"Successfully imported {count} teams.", "count": count}


@router.post("/import/fixtures")
async def import_fixtures_endpoint(db: Session = Depends(get_session)):
    try:
        count = import_fixtures(db, load_json(DATA_DIR / "fixtures.json"))
    except ImportFileError as exc:
        logger.error("Error importing fixtures: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    clear_all_caches()
    return {"success": True, "message": f"Successfully imported {count} fixtures.", "count": count}


@router.post("/import/predictions")
async def import_predictions_endpoint(db: Session = Depends(get_session)):
    try:
        count = import_predictions(db, load_json(DATA_DIR / "predictions.json"))
    except ImportFileError as exc:
        logger.error("Error importing predictions: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))

    return {"success": True, "message": f"Successfully imported {count} predictions.", "count": count}
