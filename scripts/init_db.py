from __future__ import annotations

import argparse
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from rafflechain.config import RaffleSettings
from rafflechain.db.engine import get_sessionmaker, make_engine
from rafflechain.models import RaffleRound
from rafflechain.workflows import create_raffle


def upgrade_db(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to the requested revision."""
    project_root = Path(__file__).resolve().parents[1]
    alembic_cfg = Config(str(project_root / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(project_root / "alembic"))
    command.upgrade(alembic_cfg, target_revision)


def print_tables() -> None:
    """Inspect the configured database and print all table names."""
    engine = make_engine()
    insp = inspect(engine)
    print("Current tables:", ", ".join(sorted(insp.get_table_names())))


def create_configured_raffle() -> None:
    """Create the raffle described by the ``RAFFLE_*`` environment variables."""
    settings = RaffleSettings.from_env()
    Session = get_sessionmaker(make_engine())
    with Session.begin() as session:
        if RaffleRound.get_by_name(session, settings.name) is not None:
            print(f"Raffle '{settings.name}' already exists")
            return
        raffle = create_raffle(session, settings)
        print(f"Created raffle '{raffle.name}' (id={raffle.id})")


def main() -> None:
    """Apply migrations (default to head) and report the resulting schema."""
    parser = argparse.ArgumentParser(description=main.__doc__)
    parser.add_argument(
        "--create-raffle",
        action="store_true",
        help="also create the raffle configured through RAFFLE_* variables",
    )
    args = parser.parse_args()

    upgrade_db()
    print_tables()
    if args.create_raffle:
        create_configured_raffle()


if __name__ == "__main__":
    main()
