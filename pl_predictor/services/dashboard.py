from typing import Optional

from sqlmodel import Session, func, select

from ..models.fixture import FINISHED, Fixture
from .fixtures import list_upcoming_fixtures
from .leaderboard import get_user_rank
from .predictions import get_prediction_progress, get_recent_predictions
from .users import load_profile, profile_to_dict


def current_gameweek(db: Session) -> Optional[int]:
    """Earliest gameweek that still has unfinished fixtures."""
    return db.exec(
        select(func.min(Fixture.gameweek)).where(Fixture.status != FINISHED)
    ).one()


def get_dashboard(db: Session, user_id: str) -> dict:
    profile = load_profile(db, user_id)
    gameweek = current_gameweek(db)

    return {
        "profile": profile_to_dict(profile),
        "rank": get_user_rank(db, user_id),
        "gameweek": gameweek,
        "progress": get_prediction_progress(db, user_id, gameweek) if gameweek else None,
        "recent_predictions": get_recent_predictions(db, user_id),
        "upcoming_fixtures": list_upcoming_fixtures(db),
    }
