from typing import Optional
from pydantic import NaiveDatetime
from sqlalchemy import Column, DateTime, JSON
from sqlmodel import SQLModel, Field

from ..timeutils import utcnow

UPCOMING = "upcoming"
LIVE = "live"
FINISHED = "finished"
FIXTURE_STATUSES = (UPCOMING, LIVE, FINISHED)


def build_fixture_id(gameweek: int, home_short_name: str, away_short_name: str) -> str:
    return f"GW{gameweek}-{home_short_name}-{away_short_name}"


class Fixture(SQLModel, table=True):
    __tablename__ = "fixtures"

    id: str = Field(primary_key=True)  # GW{n}-{home}-{away}
    home_team: str = Field(index=True)  # team codes
    away_team: str = Field(index=True)
    kickoff_time: NaiveDatetime = Field(sa_type=DateTime, index=True)
    prediction_deadline: NaiveDatetime = Field(sa_type=DateTime)
    gameweek: int = Field(index=True)

    # upcoming, live, finished
    status: str = Field(default=UPCOMING, index=True)

    # Filled only together with status = finished
    home_score: Optional[int] = Field(default=None)
    away_score: Optional[int] = Field(default=None)

    # Append-only log of kickoff changes
    schedule_history: list = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    created_at: NaiveDatetime = Field(sa_type=DateTime, default_factory=utcnow)
    updated_at: NaiveDatetime = Field(sa_type=DateTime, default_factory=utcnow)

    @property
    def is_finished(self) -> bool:
        return self.status == FINISHED
