#!/usr/bin/env python3
"""Apply alembic migrations to the configured database.

    python scripts/run_migrations.py            # upgrade to head
    python scripts/run_migrations.py --downgrade base
"""

import argparse
import sys
from pathlib import Path

import logfire
from alembic import command
from alembic.config import Config

from tally.config import Settings
from tally.util.logging import setup_logging
from tally.util.observability import configure_logfire

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run tally schema migrations")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--upgrade", metavar="REVISION", default="head")
    target.add_argument("--downgrade", metavar="REVISION")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = Settings()
    setup_logging(settings)
    configure_logfire(settings)

    config = Config(str(ALEMBIC_INI))
    direction = "downgrade" if args.downgrade else "upgrade"
    revision = args.downgrade or args.upgrade

    with logfire.span(
        "migrations.{direction}", direction=direction, revision=revision
    ):
        try:
            if args.downgrade:
                command.downgrade(config, revision)
            else:
                command.upgrade(config, revision)
        except Exception as e:
            logfire.error(
                "Migration failed",
                direction=direction,
                revision=revision,
                error=str(e),
                error_type=type(e).__name__,
                _exc_info=sys.exc_info(),
            )
            # The reconciler must not start against a half-migrated schema
            raise

    logfire.info("Migrations applied", direction=direction, revision=revision)
    return 0


if __name__ == "__main__":
    sys.exit(main())
