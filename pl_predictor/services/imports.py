"""
One-shot loaders for the team, fixture and prediction JSON payloads.

teams.json       [{"name", "shortName", "code", "stadium", "city", "crestUrl"}, ...]
fixtures.json    {"fixtures": [{"matchday": "Matchday 1",
                                "matches": [{"date": "16/08/2025", "time": "20:00",
                                             "home_team": "LIV", "away_team": "BOU"}]}]}
predictions.json [{"userId", "fixtureId", "homeScore", "awayScore"}, ...]
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

from sqlmodel import Session, select

from ..config import PREDICTION_DEADLINE_OFFSET, SEASON_TIMEZONE
from ..models.fixture import UPCOMING, Fixture, build_fixture_id
from ..models.prediction import Prediction, build_prediction_id
from ..models.team import Team
from ..scoring import ScoreParseError, parse_score
from ..timeutils import to_naive_utc, utcnow

logger = logging.getLogger(__name__)


class ImportFileError(ValueError):
    pass


def load_json(path: Path):
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise ImportFileError(f"Import file not found: {path.name}") from None
    except json.JSONDecodeError as exc:
        raise ImportFileError(f"Import file {path.name} is not valid JSON: {exc}") from None


def import_teams(db: Session, teams: list[dict]) -> int:
    """Upsert teams keyed by short name."""
    count = 0
    for data in teams:
        if not isinstance(data, dict) or not data.get("shortName") or not data.get("name"):
            logger.warning("Skipping team without name or short name: %s", data)
            continue

        team = Team(
            short_name=data["shortName"],
            code=data.get("code") or data["shortName"],
            name=data["name"],
            stadium=data.get("stadium"),
            city=data.get("city"),
            crest_url=data.get("crestUrl"),
        )
        db.merge(team)
        count += 1

    db.commit()
    logger.info("Successfully imported %d teams.", count)
    return count


def parse_gameweek(matchday: str) -> int:
    """'Matchday 12' -> 12"""
    parts = str(matchday or "").split()
    if len(parts) != 2 or not parts[1].isdigit():
        raise ValueError(f"Invalid matchday: {matchday!r}")
    return int(parts[1])


def parse_local_kickoff(date_text: str, time_text: str, tz_name: str = SEASON_TIMEZONE) -> datetime:
    """Fixture files use dd/mm/yyyy and HH:MM in UK local time."""
    day, month, year = (int(part) for part in date_text.split("/"))
    hours, minutes = (int(part) for part in time_text.split(":"))
    local = datetime(year, month, day, hours, minutes, tzinfo=ZoneInfo(tz_name))
    return to_naive_utc(local)


def import_fixtures(db: Session, payload: dict, teams_by_code: Optional[dict] = None) -> int:
    """
    Create fixtures from a matchday listing.

    Fixtures that have already left "upcoming" are left as they are, so a
    re-import never wipes live or final results.
    """
    if teams_by_code is None:
        teams_by_code = {team.code: team for team in db.exec(select(Team)).all()}

    gameweeks = payload.get("fixtures", [])
    logger.info("Found %d gameweeks to process.", len(gameweeks))

    count = 0
    for gameweek_data in gameweeks:
        try:
            gameweek = parse_gameweek(gameweek_data.get("matchday"))
        except ValueError as exc:
            logger.warning("Skipping gameweek: %s", exc)
            continue

        for match in gameweek_data.get("matches", []):
            try:
                kickoff_time = parse_local_kickoff(match["date"], match["time"])
            except (KeyError, ValueError):
                logger.warning("Skipping fixture with invalid date: %s", match.get("date"))
                continue

            home = teams_by_code.get(match.get("home_team"))
            away = teams_by_code.get(match.get("away_team"))
            if not home or not away:
                logger.warning(
                    "Skipping fixture with unknown team: %s vs %s",
                    match.get("home_team"), match.get("away_team")
                )
                continue

            fixture_id = build_fixture_id(gameweek, home.short_name, away.short_name)
            existing = db.get(Fixture, fixture_id)
            if existing and existing.status != UPCOMING:
                logger.info("Keeping %s fixture %s", existing.status, fixture_id)
                continue

            fixture = existing or Fixture(id=fixture_id)
            fixture.home_team = match["home_team"]
            fixture.away_team = match["away_team"]
            fixture.kickoff_time = kickoff_time
            fixture.prediction_deadline = kickoff_time - PREDICTION_DEADLINE_OFFSET
            fixture.gameweek = gameweek
            fixture.status = UPCOMING
            fixture.home_score = None
            fixture.away_score = None
            fixture.updated_at = utcnow()
            db.add(fixture)
            count += 1

    db.commit()
    logger.info("Successfully imported %d fixtures.", count)
    return count


def import_predictions(db: Session, records: list[dict]) -> int:
    """Bulk-load submitted predictions. Already scored predictions are kept."""
    count = 0
    for data in records:
        user_id = data.get("userId")
        fixture_id = data.get("fixtureId")
        if not user_id or not fixture_id:
            logger.warning("Skipping prediction without userId or fixtureId: %s", data)
            continue

        fixture = db.get(Fixture, fixture_id)
        if not fixture:
            logger.warning("Skipping prediction for unknown fixture %s", fixture_id)
            continue

        try:
            home_score = parse_score(data.get("homeScore"))
            away_score = parse_score(data.get("awayScore"))
        except ScoreParseError as exc:
            logger.warning("Skipping prediction of %s on %s: %s", user_id, fixture.id, exc)
            continue

        prediction_id = build_prediction_id(user_id, fixture.id, fixture.gameweek)
        prediction = db.get(Prediction, prediction_id)
        if prediction and prediction.is_scored:
            continue

        now = utcnow()
        if not prediction:
            prediction = Prediction(
                id=prediction_id,
                user_id=user_id,
                fixture_id=fixture.id,
                gameweek=fixture.gameweek,
                home_score=home_score,
                away_score=away_score,
                created_at=now,
            )
        prediction.home_score = home_score
        prediction.away_score = away_score
        prediction.is_submitted = True
        prediction.updated_at = now
        db.add(prediction)
        count += 1

    db.commit()
    logger.info("Successfully imported %d predictions.", count)
    return count
