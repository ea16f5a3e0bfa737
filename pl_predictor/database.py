from sqlmodel import SQLModel, Session, create_engine
from .config import DATABASE_URL


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    DATABASE_URL,
    echo=False,
    connect_args=_connect_args(DATABASE_URL)
)


def create_db_and_tables(bind=None):
    """Create all database tables."""
    # Register table models on the metadata before creating them
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)


def get_session():
    """Dependency for getting database sessions."""
    with Session(engine) as session:
        yield session
