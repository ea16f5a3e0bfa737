import os
from datetime import timedelta
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/predictor.db")

# Import payloads (teams.json, fixtures.json, predictions.json)
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))

# Admin endpoints (in production, set via environment variables)
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "change-me")
ADMIN_HEADER_NAME = "X-Admin-Key"

# Scoring
# Hard write limit of a single commit; each scored prediction costs two writes.
SCORING_BATCH_SIZE = int(os.getenv("SCORING_BATCH_SIZE", "500"))
PREDICTION_DEADLINE_OFFSET = timedelta(hours=1)
MAX_PREDICTED_GOALS = 20
GAMEWEEKS = 38

# Fixture files list kickoff times in UK local time
SEASON_TIMEZONE = os.getenv("SEASON_TIMEZONE", "Europe/London")

# Read caches
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "300"))
CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "256"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv(
    "LOG_FORMAT", "%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
