"""Rerun scoring for finished fixtures (manual retry after a failed run)."""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlmodel import Session, select
from pl_predictor.config import SCORING_BATCH_SIZE
from pl_predictor.database import engine, create_db_and_tables
from pl_predictor.logging_config import setup_logging
from pl_predictor.models.fixture import FINISHED, Fixture
from pl_predictor.services.aggregation import BatchCommitError
from pl_predictor.services.triggers import score_fixture


def rescore(db: Session, fixtures: list[Fixture], batch_size: int) -> int:
    failures = 0
    for fixture in fixtures:
        try:
            result = score_fixture(
                db, fixture.id, fixture.home_score, fixture.away_score,
                batch_size=batch_size
            )
        except BatchCommitError as exc:
            print(f"  {fixture.id}: FAILED ({exc})")
            failures += 1
            continue

        print(
            f"  {fixture.id}: {result.scored} scored, {result.skipped} skipped, "
            f"{len(result.failed)} unreadable"
        )
    return failures


def main():
    parser = argparse.ArgumentParser(description=__doc__)

    parser.add_argument(
        "fixture_ids",
        nargs="*",
        help="Fixture ids to rescore, e.g. GW3-ARS-CHE"
    )

    parser.add_argument(
        "--gameweek",
        type=int,
        help="Rescore every finished fixture of a gameweek"
    )

    parser.add_argument(
        "--batch-size",
        type=int,
        default=SCORING_BATCH_SIZE,
        help="Maximum writes per commit"
    )

    args = parser.parse_args()

    if not args.fixture_ids and args.gameweek is None:
        parser.print_help()
        return 2

    setup_logging()
    create_db_and_tables()

    with Session(engine) as db:
        statement = select(Fixture).where(Fixture.status == FINISHED)
        if args.fixture_ids:
            statement = statement.where(Fixture.id.in_(args.fixture_ids))
        if args.gameweek is not None:
            statement = statement.where(Fixture.gameweek == args.gameweek)
        fixtures = db.exec(statement.order_by(Fixture.kickoff_time)).all()

        if not fixtures:
            print("No finished fixtures matched.")
            return 0

        print(f"Rescoring {len(fixtures)} fixture(s)...")
        failures = rescore(db, fixtures, args.batch_size)

    print("Done!" if not failures else f"{failures} fixture(s) failed; rerun to finish.")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
