from typing import Optional
from sqlmodel import SQLModel, Field


class Team(SQLModel, table=True):
    __tablename__ = "teams"

    short_name: str = Field(primary_key=True, max_length=8)  # ARS, LIV, ...
    code: str = Field(unique=True, index=True)  # key used by fixture files
    name: str
    stadium: Optional[str] = Field(default=None)
    city: Optional[str] = Field(default=None)
    crest_url: Optional[str] = Field(default=None)
