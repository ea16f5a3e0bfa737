import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pl_predictor.database import create_db_and_tables
from pl_predictor.logging_config import setup_logging
from pl_predictor.routers import admin, fixtures, leaderboard, users

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: Create database tables
    setup_logging()
    create_db_and_tables()
    logger.info("Premier League Predictor started")
    yield
    # Shutdown: cleanup if needed


# Initialize FastAPI app
app = FastAPI(
    title="Premier League Predictor",
    description="Predict Premier League scores, earn points and climb the leaderboard",
    version="1.0.0",
    lifespan=lifespan
)

# Include routers
app.include_router(admin.router)
app.include_router(fixtures.router)
app.include_router(users.router)
app.include_router(leaderboard.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
