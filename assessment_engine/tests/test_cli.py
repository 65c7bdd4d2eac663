"""
CLI Test Suite

Parser wiring plus end-to-end runs against a temporary SQLite file.
"""
import asyncio
import json

import pytest
from sqlalchemy import select

from assessment_engine.cli import main, create_parser
from assessment_engine.cli.db_commands import DbCommand, DEMO_INSTRUCTOR_EMAIL
from assessment_engine.database import Database
from assessment_engine.orm import Rubric, Submission, User
from assessment_engine.services.access_guard import Actor
from assessment_engine.services.grading_service import GradingService, GradeRequest
from assessment_engine.services.score_calculator import Judgment


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"


def grade_demo(database_url):
    """Grade the seeded demo submission with the best level of each criterion."""

    async def run():
        database = Database(database_url)
        try:
            async with database.session() as session:
                instructor = (await session.execute(
                    select(User).where(User.email == DEMO_INSTRUCTOR_EMAIL)
                )).scalar_one()
                submission = (await session.execute(select(Submission))).scalar_one()
                rubric_id = (await session.execute(select(Rubric.id))).scalar_one()

                rubric = await GradingService(session).rubrics.get(rubric_id)
                judgments = [
                    Judgment(criterion.id, criterion.levels[-1].id) for criterion in rubric.criteria
                ]
                outcome = await GradingService(session).grade_submission(
                    Actor.from_user(instructor),
                    GradeRequest(rubric_id=rubric_id, submission_id=submission.id, judgments=judgments)
                )
                return outcome.assessment.id
        finally:
            await database.dispose()

    return asyncio.run(run())


# =============================================================================
# CLI Parser Tests
# =============================================================================

class TestCLIParser:

    def test_db_init_parsing(self):
        args = create_parser().parse_args(["db", "init"])

        assert args.command == "db"
        assert args.db_action == "init"
        assert args.dry_run is False

    def test_assessments_list_parsing(self):
        args = create_parser().parse_args([
            "assessments", "list", "--submission-id", "s1", "--limit", "5", "--json"
        ])

        assert args.command == "assessments"
        assert args.assessments_action == "list"
        assert args.submission_id == "s1"
        assert args.rubric_id is None
        assert args.limit == 5
        assert args.json is True

    def test_global_options(self):
        args = create_parser().parse_args([
            "--dry-run", "--log-level", "DEBUG", "--database-url", "sqlite+aiosqlite://", "db", "seed-demo"
        ])

        assert args.dry_run is True
        assert args.log_level == "DEBUG"
        assert args.database_url == "sqlite+aiosqlite://"

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()


# =============================================================================
# Command Tests
# =============================================================================

class TestDbCommands:

    def test_init_creates_tables(self, database_url, capsys):
        assert main(["--database-url", database_url, "db", "init"]) == 0
        assert "Tables created" in capsys.readouterr().out

    def test_dry_run_does_nothing(self, database_url, tmp_path, capsys):
        assert main(["--dry-run", "--database-url", database_url, "db", "init"]) == 0

        assert "[DRY RUN]" in capsys.readouterr().out
        assert not (tmp_path / "cli.db").exists()

    def test_seed_demo_is_idempotent(self, database_url, capsys):
        assert main(["--database-url", database_url, "db", "seed-demo"]) == 0
        first = capsys.readouterr().out
        assert "rubric_id" in first
        assert "submission_id" in first

        assert main(["--database-url", database_url, "db", "seed-demo"]) == 0
        assert "already present" in capsys.readouterr().out

    def test_init_keeps_existing_rows(self, database_url, capsys):
        assert main(["--database-url", database_url, "db", "seed-demo"]) == 0
        assessment_id = grade_demo(database_url)

        assert main(["--database-url", database_url, "db", "init"]) == 0
        capsys.readouterr()

        assert main(["--database-url", database_url, "assessments", "list", "--json"]) == 0
        rows = json.loads(capsys.readouterr().out)
        assert [row["id"] for row in rows] == [assessment_id]

    def test_unknown_action(self, database_url, capsys):
        args = create_parser().parse_args(["db"])

        assert DbCommand(database_url).execute(args) == 1
        assert "Unknown database action" in capsys.readouterr().out


class TestAssessmentCommands:

    def test_list_empty(self, database_url, capsys):
        main(["--database-url", database_url, "db", "init"])
        capsys.readouterr()

        assert main(["--database-url", database_url, "assessments", "list"]) == 0
        assert "No assessments found" in capsys.readouterr().out

    def test_list_json_after_grading(self, database_url, capsys):
        main(["--database-url", database_url, "db", "seed-demo"])
        assessment_id = grade_demo(database_url)
        capsys.readouterr()

        assert main(["--database-url", database_url, "assessments", "list", "--json"]) == 0
        rows = json.loads(capsys.readouterr().out)

        assert len(rows) == 1
        assert rows[0]["id"] == assessment_id
        assert rows[0]["totalScore"] == 85.0
        assert rows[0]["percentage"] == 85.0
        assert len(rows[0]["criteriaAssessments"]) == 2

    def test_list_table_after_grading(self, database_url, capsys):
        main(["--database-url", database_url, "db", "seed-demo"])
        assessment_id = grade_demo(database_url)
        capsys.readouterr()

        assert main(["--database-url", database_url, "assessments", "list"]) == 0
        out = capsys.readouterr().out

        assert assessment_id in out
        assert "85/100 (85.00%)" in out
        assert "1 assessment(s)" in out
