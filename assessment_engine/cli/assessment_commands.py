"""
Assessment CLI Commands

Read-only inspection of stored assessments (admin scope)
"""
import asyncio
import json

from assessment_engine.database import Database
from assessment_engine.schemas.assessment import AssessmentOut
from assessment_engine.services.assessment_repository import (
    AssessmentRepository, AssessmentQuery, AssessmentScope
)


class AssessmentCommand:
    """Assessment CLI command handler."""

    def __init__(self, database_url: str, dry_run: bool = False):
        self.database_url = database_url
        self.dry_run = dry_run

    def execute(self, args) -> int:
        if args.assessments_action == "list":
            return asyncio.run(self._list(args))
        print("Error: Unknown assessments action")
        return 1

    async def _list(self, args) -> int:
        query = AssessmentQuery(
            submission_id=args.submission_id,
            rubric_id=args.rubric_id,
            evaluator_id=args.evaluator_id,
            limit=args.limit,
        )

        database = Database(self.database_url)
        try:
            async with database.session() as session:
                assessments = await AssessmentRepository(session).list(query, AssessmentScope.everything())
                rows = [AssessmentOut.from_assessment(a) for a in assessments]
        finally:
            await database.dispose()

        if args.json:
            print(json.dumps([row.model_dump(mode="json", by_alias=True) for row in rows], indent=2))
            return 0

        if not rows:
            print("No assessments found")
            return 0

        print(f"{'ID':<36}  {'SUBMISSION':<36}  {'EVALUATOR':<36}  SCORE")
        for row in rows:
            print(
                f"{row.id:<36}  {row.submission_id:<36}  {row.evaluator_id:<36}  "
                f"{row.total_score:g}/{row.max_score:g} ({row.percentage:.2f}%)"
            )
        print(f"\n{len(rows)} assessment(s)")
        return 0
