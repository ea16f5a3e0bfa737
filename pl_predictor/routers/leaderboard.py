from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from ..config import GAMEWEEKS
from ..database import get_session
from ..services.leaderboard import (
    get_leaderboard_around_user,
    get_leaderboard_stats,
    get_top_leaderboard,
    get_user_rank,
    get_weekly_leaderboard,
)

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("")
async def leaderboard(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_session)
):
    return get_top_leaderboard(db, limit)


@router.get("/stats")
async def leaderboard_stats(db: Session = Depends(get_session)):
    return get_leaderboard_stats(db)


@router.get("/weekly/{gameweek}")
async def weekly_leaderboard(
    gameweek: int,
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_session)
):
    if not 1 <= gameweek <= GAMEWEEKS:
        raise HTTPException(status_code=400, detail=f"Invalid gameweek (1-{GAMEWEEKS}).")
    return get_weekly_leaderboard(db, gameweek, limit)


@router.get("/users/{user_id}/rank")
async def user_rank(user_id: str, db: Session = Depends(get_session)):
    return {"user_id": user_id, "rank": get_user_rank(db, user_id)}


@router.get("/users/{user_id}/around")
async def leaderboard_around_user(
    user_id: str,
    range_: int = Query(5, ge=1, le=25, alias="range"),
    db: Session = Depends(get_session)
):
    return get_leaderboard_around_user(db, user_id, range_)
