"""
Database CLI Commands

Database operations: init, seed-demo
"""
import asyncio
from typing import Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.database import Database, unit_of_work
from assessment_engine.orm.course import Course, CourseEnrollment, EnrollmentRole, Project
from assessment_engine.orm.rubric import Rubric, RubricCriterion, RubricLevel
from assessment_engine.orm.submission import Submission, SubmissionStatus
from assessment_engine.orm.user import User, UserRole

DEMO_INSTRUCTOR_EMAIL = "instructor@demo.local"


async def seed_demo(session: AsyncSession) -> Dict[str, str]:
    """
    Insert a demo course with one project, a two-criterion rubric and a
    pending submission. Committed by the caller.

    Rubric (max 100):
        Implementation  weight 2  levels Partial=10, Complete=20
        Documentation   weight 3  levels Sparse=5,   Thorough=15
    """
    admin = User(email="admin@demo.local", full_name="Demo Admin", role=UserRole.admin)
    instructor = User(email=DEMO_INSTRUCTOR_EMAIL, full_name="Demo Instructor", role=UserRole.instructor)
    mentor = User(email="mentor@demo.local", full_name="Demo Mentor", role=UserRole.mentor)
    student = User(email="student@demo.local", full_name="Demo Student", role=UserRole.student)
    session.add_all([admin, instructor, mentor, student])
    await session.flush()

    course = Course(title="Demo Course", instructor_id=instructor.id)
    session.add(course)
    await session.flush()

    session.add_all([
        CourseEnrollment(course_id=course.id, user_id=mentor.id, role=EnrollmentRole.mentor),
        CourseEnrollment(course_id=course.id, user_id=student.id, role=EnrollmentRole.student),
    ])

    project = Project(course_id=course.id, title="Capstone Project")
    session.add(project)
    await session.flush()

    rubric = Rubric(
        title="Capstone Rubric",
        description="Demo rubric",
        max_points=100.0,
        is_published=True,
        project_id=project.id,
        created_by_id=instructor.id,
    )
    implementation = RubricCriterion(name="Implementation", weight=2.0, position=0)
    implementation.levels = [
        RubricLevel(name="Partial", points=10.0, position=0),
        RubricLevel(name="Complete", points=20.0, position=1),
    ]
    documentation = RubricCriterion(name="Documentation", weight=3.0, position=1)
    documentation.levels = [
        RubricLevel(name="Sparse", points=5.0, position=0),
        RubricLevel(name="Thorough", points=15.0, position=1),
    ]
    rubric.criteria = [implementation, documentation]
    session.add(rubric)

    submission = Submission(student_id=student.id, project_id=project.id, status=SubmissionStatus.PENDING)
    session.add(submission)
    await session.flush()

    return {
        "admin_id": admin.id,
        "instructor_id": instructor.id,
        "mentor_id": mentor.id,
        "student_id": student.id,
        "course_id": course.id,
        "project_id": project.id,
        "rubric_id": rubric.id,
        "submission_id": submission.id,
    }


class DbCommand:
    """Database CLI command handler."""

    def __init__(self, database_url: str, dry_run: bool = False):
        self.database_url = database_url
        self.dry_run = dry_run

    def execute(self, args) -> int:
        """Execute database command."""
        if args.db_action == "init":
            return asyncio.run(self._init())
        elif args.db_action == "seed-demo":
            return asyncio.run(self._seed_demo())
        else:
            print("Error: Unknown database action")
            return 1

    async def _init(self) -> int:
        print("=== Database Initialization ===")
        if self.dry_run:
            print(f"[DRY RUN] Would create tables on {self.database_url}")
            return 0

        database = Database(self.database_url)
        try:
            await database.create_all()
        finally:
            await database.dispose()
        print("Tables created")
        return 0

    async def _seed_demo(self) -> int:
        print("=== Demo Data ===")
        if self.dry_run:
            print("[DRY RUN] Would insert demo course, rubric and submission")
            return 0

        database = Database(self.database_url)
        try:
            await database.create_all()
            async with database.session() as session:
                existing = await session.execute(select(User.id).where(User.email == DEMO_INSTRUCTOR_EMAIL))
                if existing.scalar_one_or_none() is not None:
                    print("Demo data already present, nothing to do")
                    return 0

                async with unit_of_work(session):
                    ids = await seed_demo(session)
        finally:
            await database.dispose()

        for key, value in ids.items():
            print(f"  {key:<14} {value}")
        return 0
