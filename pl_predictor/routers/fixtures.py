from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from ..config import GAMEWEEKS
from ..database import get_session
from ..services.fixtures import (
    FixtureNotFoundError,
    get_fixture,
    list_gameweek_fixtures,
    list_upcoming_fixtures,
)

router = APIRouter(prefix="/api/fixtures", tags=["fixtures"])


@router.get("")
async def get_gameweek_fixtures(
    gameweek: int = Query(..., ge=1, le=GAMEWEEKS),
    db: Session = Depends(get_session)
):
    """All fixtures for a gameweek in kickoff order."""
    fixtures = list_gameweek_fixtures(db, gameweek)
    if not fixtures:
        raise HTTPException(status_code=404, detail=f"No fixtures found for gameweek {gameweek}.")

    return {"gameweek": gameweek, "count": len(fixtures), "fixtures": fixtures}


@router.get("/upcoming")
async def get_upcoming_fixtures(
    limit: int = Query(5, ge=1, le=50),
    db: Session = Depends(get_session)
):
    return list_upcoming_fixtures(db, limit)


@router.get("/{fixture_id}")
async def get_fixture_by_id(fixture_id: str, db: Session = Depends(get_session)):
    try:
        return get_fixture(db, fixture_id)
    except FixtureNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
