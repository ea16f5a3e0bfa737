from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlmodel import Session

from ..config import GAMEWEEKS, MAX_PREDICTED_GOALS
from ..database import get_session
from ..services.dashboard import get_dashboard
from ..services.fixtures import FixtureNotFoundError
from ..services.predictions import (
    PredictionLockedError,
    list_user_predictions,
    prediction_to_dict,
    save_prediction,
)
from ..services.users import (
    UserExistsError,
    UserNotFoundError,
    create_profile,
    load_profile,
    profile_to_dict,
    update_profile,
)

router = APIRouter(prefix="/api/users", tags=["users"])


class ProfileCreate(BaseModel):
    id: str = Field(min_length=1)
    display_name: Optional[str] = None
    email: Optional[str] = None
    photo_url: Optional[str] = None


class ProfileUpdate(BaseModel):
    """Profile edit. Scoring statistics are not editable."""
    # Non-null columns: omit to leave unchanged, null is rejected
    display_name: str = Field(default=None, min_length=1)
    email: Optional[str] = None
    photo_url: Optional[str] = None
    favorite_team: Optional[str] = None
    show_on_leaderboard: bool = None


class PredictionCreate(BaseModel):
    fixture_id: str
    home_score: int = Field(ge=0, le=MAX_PREDICTED_GOALS)
    away_score: int = Field(ge=0, le=MAX_PREDICTED_GOALS)


@router.post("", status_code=201)
async def create_user(data: ProfileCreate, db: Session = Depends(get_session)):
    try:
        profile = create_profile(db, data.id, data.display_name, data.email, data.photo_url)
    except UserExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return profile_to_dict(profile)


@router.get("/{user_id}")
async def get_user(user_id: str, db: Session = Depends(get_session)):
    try:
        return profile_to_dict(load_profile(db, user_id))
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.patch("/{user_id}")
async def edit_user(user_id: str, data: ProfileUpdate, db: Session = Depends(get_session)):
    try:
        profile = update_profile(db, user_id, data.model_dump(exclude_unset=True))
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return profile_to_dict(profile)


@router.get("/{user_id}/dashboard")
async def user_dashboard(user_id: str, db: Session = Depends(get_session)):
    try:
        return get_dashboard(db, user_id)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/{user_id}/predictions")
async def get_user_predictions(
    user_id: str,
    gameweek: Optional[int] = Query(None, ge=1, le=GAMEWEEKS),
    db: Session = Depends(get_session)
):
    return [prediction_to_dict(p) for p in list_user_predictions(db, user_id, gameweek)]


@router.post("/{user_id}/predictions")
async def submit_prediction(
    user_id: str,
    data: PredictionCreate,
    db: Session = Depends(get_session)
):
    """Create or update a prediction before the fixture's deadline."""
    try:
        prediction = save_prediction(db, user_id, data.fixture_id, data.home_score, data.away_score)
    except FixtureNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except PredictionLockedError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return prediction_to_dict(prediction)
