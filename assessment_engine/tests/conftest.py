"""
Shared fixtures: a temporary SQLite database seeded with one course, its
staff and students, and the worked example rubric (see factories.py).
"""
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from assessment_engine.config.settings import Settings
from assessment_engine.database import Database
from assessment_engine.orm import (
    User, Course, CourseEnrollment, EnrollmentRole, Project, Submission, SubmissionStatus,
)
from assessment_engine.services.notification_dispatcher import LoggingNotificationDispatcher
from assessment_engine.tests.factories import (
    TEST_SECRET, World, build_rubric, single_criterion_rubric,
)


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'assessments.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def world(database: Database) -> World:
    w = World()
    async with database.session() as session:
        async with session.begin():
            for name, (user_id, role) in w.users.items():
                session.add(User(id=user_id, email=f"{name}@test.local", full_name=name.title(), role=role))
            await session.flush()

            session.add_all([
                Course(id=w.course_id, title="Course One", instructor_id=w.user_id("instructor")),
                Course(id=w.other_course_id, title="Course Two", instructor_id=w.user_id("outsider")),
            ])
            await session.flush()

            session.add_all([
                CourseEnrollment(course_id=w.course_id, user_id=w.user_id("mentor"), role=EnrollmentRole.mentor),
                CourseEnrollment(course_id=w.course_id, user_id=w.user_id("student"), role=EnrollmentRole.student),
                CourseEnrollment(course_id=w.course_id, user_id=w.user_id("classmate"), role=EnrollmentRole.student),
                Project(id=w.project_id, course_id=w.course_id, title="Capstone"),
                Project(id=w.other_project_id, course_id=w.other_course_id, title="Other Capstone"),
            ])
            await session.flush()

            session.add_all([
                build_rubric(w.rubric_id, project_id=w.project_id),
                single_criterion_rubric(w.draft_rubric_id, "cd1", "ld1", project_id=w.project_id, is_published=False),
                single_criterion_rubric(w.other_rubric_id, "co1", "lo1", project_id=w.other_project_id),
                single_criterion_rubric(w.zero_rubric_id, "cz1", "lz1", max_points=0.0),
            ])
            await session.flush()

            session.add_all([
                Submission(id=w.submission_id, student_id=w.user_id("student"), project_id=w.project_id,
                           status=SubmissionStatus.PENDING),
                Submission(id=w.classmate_submission_id, student_id=w.user_id("classmate"),
                           project_id=w.project_id, status=SubmissionStatus.PENDING),
                Submission(id=w.approved_submission_id, student_id=w.user_id("student"),
                           project_id=w.project_id, status=SubmissionStatus.APPROVED),
            ])
    return w


@pytest_asyncio.fixture
async def session(database: Database, world: World) -> AsyncGenerator[AsyncSession, None]:
    async with database.session() as s:
        yield s


@pytest.fixture
def notifier() -> LoggingNotificationDispatcher:
    return LoggingNotificationDispatcher()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'assessments.db'}",
        jwt_secret_key=TEST_SECRET,
        environment="test",
        auto_create_tables=False,
        rate_limit_enabled=False,
    )


@pytest_asyncio.fixture
async def app(settings: Settings, database: Database, world: World, notifier):
    from assessment_engine.main import create_app
    return create_app(settings, database=database, notifier=notifier)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
