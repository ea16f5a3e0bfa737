import logging
from typing import Optional

from sqlmodel import Session

from ..models.user import UserProfile, default_stats
from ..timeutils import isoformat, utcnow
from .leaderboard import leaderboard_cache

logger = logging.getLogger(__name__)

# Fields a profile edit may touch; stats belong to the scoring pipeline
EDITABLE_FIELDS = ("display_name", "email", "photo_url", "favorite_team", "show_on_leaderboard")


class UserNotFoundError(LookupError):
    pass


class UserExistsError(ValueError):
    pass


def profile_to_dict(profile: UserProfile) -> dict:
    return {
        "id": profile.id,
        "display_name": profile.display_name,
        "email": profile.email,
        "photo_url": profile.photo_url,
        "favorite_team": profile.favorite_team,
        "show_on_leaderboard": profile.show_on_leaderboard,
        "stats": profile.get_stats().to_document(),
        "created_at": isoformat(profile.created_at),
        "last_active_at": isoformat(profile.last_active_at),
    }


def load_profile(db: Session, user_id: str) -> UserProfile:
    profile = db.get(UserProfile, user_id)
    if not profile:
        raise UserNotFoundError(f"User {user_id} not found.")
    return profile


def create_profile(
    db: Session,
    user_id: str,
    display_name: Optional[str] = None,
    email: Optional[str] = None,
    photo_url: Optional[str] = None,
) -> UserProfile:
    if db.get(UserProfile, user_id):
        raise UserExistsError(f"User {user_id} already exists.")

    profile = UserProfile(
        id=user_id,
        display_name=display_name or "Anonymous",
        email=email,
        photo_url=photo_url,
        stats=default_stats(),
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    logger.info("Created profile for user %s", user_id)
    return profile


def update_profile(db: Session, user_id: str, changes: dict) -> UserProfile:
    """
    Apply a profile edit.

    Only the edited columns are written, so an edit racing a scoring batch
    cannot overwrite the stats record.
    """
    profile = load_profile(db, user_id)
    for field_name, value in changes.items():
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"Field {field_name} cannot be edited.")
        setattr(profile, field_name, value)
    profile.last_active_at = utcnow()

    db.add(profile)
    db.commit()
    db.refresh(profile)

    # Names and visibility show up on the leaderboard
    leaderboard_cache.invalidate()
    return profile
