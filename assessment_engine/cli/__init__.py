#!/usr/bin/env python3
"""
Assessment Engine CLI

Usage:
    python -m assessment_engine.cli <command> [options]

Commands:
    db           Database operations (init, seed-demo)
    assessments  Inspect stored assessments (list)

Environment:
    DATABASE_URL    Async SQLAlchemy URL (default: local SQLite file)
    LOG_LEVEL       DEBUG|INFO|WARNING|ERROR
"""
import sys
import argparse
import logging
from typing import Optional

from assessment_engine import __version__
from assessment_engine.cli.assessment_commands import AssessmentCommand
from assessment_engine.cli.db_commands import DbCommand
from assessment_engine.config.settings import Settings
from assessment_engine.services.assessment_repository import DEFAULT_PAGE_SIZE


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="assessment-engine",
        description="Rubric Assessment Engine CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s db init
  %(prog)s db seed-demo
  %(prog)s assessments list --submission-id <id>
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)"
    )

    parser.add_argument(
        "--database-url",
        help="Override DATABASE_URL"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Database commands
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_subparsers = db_parser.add_subparsers(dest="db_action")
    db_subparsers.add_parser("init", help="Create missing tables")
    db_subparsers.add_parser("seed-demo", help="Insert a demo course, rubric and submission")

    # Assessment commands
    assessments_parser = subparsers.add_parser("assessments", help="Inspect assessments")
    assessments_subparsers = assessments_parser.add_subparsers(dest="assessments_action")

    list_parser = assessments_subparsers.add_parser("list", help="List assessments, newest first")
    list_parser.add_argument("--submission-id", help="Filter by submission")
    list_parser.add_argument("--rubric-id", help="Filter by rubric")
    list_parser.add_argument("--evaluator-id", help="Filter by evaluator")
    list_parser.add_argument("--limit", type=int, default=DEFAULT_PAGE_SIZE, help="Maximum rows")
    list_parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 1

    setup_logging(parsed.log_level)

    database_url = parsed.database_url or Settings.from_env().database_url

    command_map = {
        "db": DbCommand,
        "assessments": AssessmentCommand,
    }

    if parsed.command in command_map:
        handler = command_map[parsed.command](database_url, dry_run=parsed.dry_run)
        return handler.execute(parsed)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
