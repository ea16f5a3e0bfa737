from typing import Optional

from sqlmodel import Session, func, select

from ..models.prediction import Prediction
from ..models.user import UserProfile
from .cache import QueryCache

leaderboard_cache = QueryCache("leaderboard")


def _total_points():
    return UserProfile.stats["totalPoints"].as_integer()


def _entry(profile: UserProfile, position: int) -> dict:
    stats = profile.get_stats()
    return {
        "uid": profile.id,
        "display_name": profile.display_name or "Anonymous",
        "photo_url": profile.photo_url,
        "total_points": stats.total_points,
        "position": position,
        "accuracy": stats.accuracy_rate,
    }


def get_top_leaderboard(db: Session, limit: int = 10) -> list[dict]:
    """Highest total points among users who show on the leaderboard."""
    def load():
        statement = (
            select(UserProfile)
            .where(UserProfile.show_on_leaderboard == True)  # noqa: E712
            .order_by(_total_points().desc(), UserProfile.id)
            .limit(limit)
        )
        return [_entry(profile, i + 1) for i, profile in enumerate(db.exec(statement).all())]

    return leaderboard_cache.get_or_load(("top", limit), load)


def get_user_rank(db: Session, user_id: str) -> Optional[int]:
    """1-based rank; None for unknown or hidden users and for users without points."""
    profile = db.get(UserProfile, user_id)
    if not profile or not profile.show_on_leaderboard:
        return None

    points = profile.get_stats().total_points
    if points == 0:
        return None

    users_above = db.exec(
        select(func.count(UserProfile.id))
        .where(
            UserProfile.show_on_leaderboard == True,  # noqa: E712
            _total_points() > points
        )
    ).one()
    return users_above + 1


def get_leaderboard_around_user(db: Session, user_id: str, range_: int = 5) -> list[dict]:
    rank = get_user_rank(db, user_id)
    if not rank:
        return []

    start = max(1, rank - range_)
    end = rank + range_
    return get_top_leaderboard(db, end)[start - 1:end]


def get_weekly_leaderboard(db: Session, gameweek: int, limit: int = 10) -> list[dict]:
    """Points earned within one gameweek, from scored predictions."""
    def load():
        weekly_points = func.sum(Prediction.points_earned).label("weekly_points")
        statement = (
            select(UserProfile, weekly_points)
            .join(Prediction, Prediction.user_id == UserProfile.id)
            .where(
                UserProfile.show_on_leaderboard == True,  # noqa: E712
                Prediction.gameweek == gameweek,
                Prediction.points_earned != None  # noqa: E711
            )
            .group_by(UserProfile.id)
            .having(func.sum(Prediction.points_earned) > 0)
            .order_by(weekly_points.desc(), UserProfile.id)
            .limit(limit)
        )
        leaderboard = []
        for i, (profile, points) in enumerate(db.exec(statement).all()):
            entry = _entry(profile, i + 1)
            entry["weekly_points"] = points or 0
            leaderboard.append(entry)
        return leaderboard

    return leaderboard_cache.get_or_load(("weekly", gameweek, limit), load)


def get_leaderboard_stats(db: Session) -> dict:
    def load():
        totals = db.exec(
            select(_total_points())
            .where(
                UserProfile.show_on_leaderboard == True,  # noqa: E712
                _total_points() > 0
            )
        ).all()
        total_users = len(totals)
        return {
            "total_users": total_users,
            "average_points": round(sum(totals) / total_users) if total_users else 0,
            "top_score": max(totals, default=0),
        }

    return leaderboard_cache.get_or_load(("stats",), load)
