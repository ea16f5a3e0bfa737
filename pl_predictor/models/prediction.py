from typing import Optional
from pydantic import NaiveDatetime
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from ..timeutils import utcnow


def build_prediction_id(user_id: str, fixture_id: str, gameweek: int) -> str:
    return f"{user_id}_{fixture_id}_{gameweek}"


class Prediction(SQLModel, table=True):
    __tablename__ = "predictions"

    id: str = Field(primary_key=True)  # {userId}_{fixtureId}_{gameweek}
    user_id: str = Field(index=True)
    fixture_id: str = Field(index=True)
    gameweek: int = Field(index=True)

    home_score: int
    away_score: int

    # Set once by the scoring pipeline
    points_earned: Optional[int] = Field(default=None)
    calculated_at: Optional[NaiveDatetime] = Field(sa_type=DateTime, default=None)

    is_submitted: bool = Field(default=True)
    created_at: NaiveDatetime = Field(sa_type=DateTime, default_factory=utcnow)
    updated_at: NaiveDatetime = Field(sa_type=DateTime, default_factory=utcnow)

    @property
    def is_scored(self) -> bool:
        return self.points_earned is not None and self.calculated_at is not None
