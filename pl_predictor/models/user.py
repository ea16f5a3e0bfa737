from typing import Optional
from pydantic import BaseModel, ConfigDict, NaiveDatetime
from pydantic.alias_generators import to_camel
from sqlalchemy import Column, DateTime, JSON
from sqlmodel import SQLModel, Field

from ..timeutils import utcnow


class UserStats(BaseModel):
    """Aggregate scoring statistics nested inside a user profile."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_points: int = 0
    exact_predictions: int = 0
    correct_predictions: int = 0
    wrong_predictions: int = 0
    processed_predictions_count: int = 0
    accuracy_rate: int = 0  # integer percentage
    current_streak: int = 0
    longest_streak: int = 0

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)


def default_stats() -> dict:
    return UserStats().to_document()


class UserProfile(SQLModel, table=True):
    __tablename__ = "user_profiles"

    id: str = Field(primary_key=True)
    display_name: str
    email: Optional[str] = Field(default=None, index=True)
    photo_url: Optional[str] = Field(default=None)
    favorite_team: Optional[str] = Field(default=None)
    show_on_leaderboard: bool = Field(default=True, index=True)

    # Written only by the scoring pipeline
    stats: dict = Field(default_factory=default_stats, sa_column=Column(JSON, nullable=False))

    created_at: NaiveDatetime = Field(sa_type=DateTime, default_factory=utcnow)
    last_active_at: NaiveDatetime = Field(sa_type=DateTime, default_factory=utcnow)

    def get_stats(self) -> UserStats:
        return UserStats.model_validate(self.stats or {})
