"""
Integration Tests for rubric authoring

Coverage:
- Create keeps criterion and level order and records the author
- Input and role checks on create
- Listing by project (staff vs enrolled students) and by author
- Delete removes criteria and levels; graded rubrics are refused
"""
import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import OperationalError

from assessment_engine.errors import BadRequestError, ForbiddenError, InternalError, NotFoundError, ErrorCode
from assessment_engine.orm import Rubric, RubricCriterion, RubricLevel
from assessment_engine.services.grading_service import GradingService, GradeRequest
from assessment_engine.services.rubric_service import (
    CriterionDraft, LevelDraft, RubricDraft, RubricService
)
from assessment_engine.services.score_calculator import Judgment
from assessment_engine.services.stores import RubricStore
from assessment_engine.tests.factories import best_judgments


def draft(project_id=None, **overrides) -> RubricDraft:
    fields = dict(
        title="Presentation",
        project_id=project_id,
        max_points=20.0,
        criteria=[
            CriterionDraft(name="Clarity", levels=[LevelDraft("Poor", 0.0), LevelDraft("Clear", 10.0)]),
            CriterionDraft(name="Delivery", weight=1.0, levels=[LevelDraft("Flat", 2.0), LevelDraft("Lively", 10.0)]),
        ],
    )
    fields.update(overrides)
    return RubricDraft(**fields)


async def count(session, model, *criteria) -> int:
    result = await session.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar_one()


class TestCreateRubric:

    @pytest.mark.asyncio
    async def test_create_for_project(self, session, world):
        service = RubricService(session)

        rubric = await service.create_rubric(world.actor("mentor"), draft(world.project_id))

        stored = await service.rubrics.get(rubric.id)
        assert stored.created_by_id == world.user_id("mentor")
        assert stored.project_id == world.project_id
        assert stored.is_published is False
        assert [c.name for c in stored.criteria] == ["Clarity", "Delivery"]
        assert [level.name for level in stored.criteria[1].levels] == ["Flat", "Lively"]
        assert [level.position for level in stored.criteria[1].levels] == [0, 1]

    @pytest.mark.asyncio
    async def test_created_rubric_can_be_graded(self, session, world, notifier):
        rubric = await RubricService(session).create_rubric(world.actor("instructor"), draft(world.project_id))
        stored = await RubricService(session).rubrics.get(rubric.id)
        judgments = [
            Judgment(criterion_id=c.id, level_id=c.levels[-1].id) for c in stored.criteria
        ]

        outcome = await GradingService(session, notifier=notifier).grade_submission(
            world.actor("instructor"),
            GradeRequest(rubric_id=rubric.id, submission_id=world.submission_id, judgments=judgments),
        )

        assert outcome.assessment.total_score == 20.0
        assert outcome.assessment.percentage == 100.0

    @pytest.mark.asyncio
    async def test_projectless_rubric_for_author(self, session, world):
        rubric = await RubricService(session).create_rubric(world.actor("instructor"), draft())

        assert rubric.project_id is None
        assert rubric.created_by_id == world.user_id("instructor")

    @pytest.mark.asyncio
    async def test_student_cannot_create(self, session, world):
        with pytest.raises(ForbiddenError):
            await RubricService(session).create_rubric(world.actor("student"), draft(world.project_id))

        assert await count(session, Rubric) == 4

    @pytest.mark.asyncio
    async def test_non_staff_cannot_attach_to_project(self, session, world):
        with pytest.raises(ForbiddenError):
            await RubricService(session).create_rubric(world.actor("outsider"), draft(world.project_id))

        assert await count(session, Rubric) == 4

    @pytest.mark.asyncio
    async def test_unknown_project(self, session, world):
        with pytest.raises(NotFoundError) as exc_info:
            await RubricService(session).create_rubric(world.actor("admin"), draft("missing"))

        assert exc_info.value.code == ErrorCode.PROJECT_NOT_FOUND

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overrides", [
        {"criteria": []},
        {"title": "   "},
        {"max_points": 0.0},
        {"criteria": [CriterionDraft(name="Empty")]},
    ])
    async def test_invalid_drafts(self, session, world, overrides):
        with pytest.raises(BadRequestError) as exc_info:
            await RubricService(session).create_rubric(world.actor("instructor"), draft(world.project_id, **overrides))

        assert exc_info.value.code == ErrorCode.INVALID_INPUT
        assert exc_info.value.status_code == 400
        assert await count(session, Rubric) == 4


class TestListRubrics:

    @pytest.mark.asyncio
    async def test_staff_see_drafts(self, session, world):
        rubrics = await RubricService(session).list_rubrics(world.actor("mentor"), world.project_id)

        assert sorted(r.id for r in rubrics) == sorted([world.rubric_id, world.draft_rubric_id])

    @pytest.mark.asyncio
    async def test_enrolled_student_sees_published_only(self, session, world):
        rubrics = await RubricService(session).list_rubrics(world.actor("student"), world.project_id)

        assert [r.id for r in rubrics] == [world.rubric_id]

    @pytest.mark.asyncio
    async def test_unenrolled_user_is_forbidden(self, session, world):
        with pytest.raises(ForbiddenError):
            await RubricService(session).list_rubrics(world.actor("outsider"), world.project_id)

    @pytest.mark.asyncio
    async def test_own_rubrics_without_project(self, session, world):
        service = RubricService(session)
        mine = await service.create_rubric(world.actor("mentor"), draft())
        await service.create_rubric(world.actor("instructor"), draft())

        rubrics = await service.list_rubrics(world.actor("mentor"))

        assert [r.id for r in rubrics] == [mine.id]

    @pytest.mark.asyncio
    async def test_students_have_no_own_rubrics(self, session, world):
        with pytest.raises(ForbiddenError):
            await RubricService(session).list_rubrics(world.actor("student"))


class TestDeleteRubric:

    @pytest.mark.asyncio
    async def test_delete_removes_criteria_and_levels(self, session, world):
        service = RubricService(session)
        rubric = await service.create_rubric(world.actor("instructor"), draft(world.project_id))
        criteria_before = await count(session, RubricCriterion)
        levels_before = await count(session, RubricLevel)

        await service.delete_rubric(world.actor("instructor"), rubric.id)

        assert await count(session, Rubric, Rubric.id == rubric.id) == 0
        assert await count(session, RubricCriterion) == criteria_before - 2
        assert await count(session, RubricLevel) == levels_before - 4

    @pytest.mark.asyncio
    async def test_graded_rubric_is_in_use(self, session, world, notifier):
        await GradingService(session, notifier=notifier).grade_submission(
            world.actor("mentor"),
            GradeRequest(rubric_id=world.rubric_id, submission_id=world.submission_id, judgments=best_judgments()),
        )

        with pytest.raises(BadRequestError) as exc_info:
            await RubricService(session).delete_rubric(world.actor("admin"), world.rubric_id)

        assert exc_info.value.code == ErrorCode.RUBRIC_IN_USE
        assert exc_info.value.details == {"assessment_count": 1}
        assert await count(session, Rubric, Rubric.id == world.rubric_id) == 1

    @pytest.mark.asyncio
    async def test_only_course_instructor_or_admin(self, session, world):
        service = RubricService(session)

        for name in ("mentor", "student", "outsider"):
            with pytest.raises(ForbiddenError):
                await service.delete_rubric(world.actor(name), world.draft_rubric_id)

        await service.delete_rubric(world.actor("admin"), world.draft_rubric_id)
        assert await count(session, Rubric, Rubric.id == world.draft_rubric_id) == 0

    @pytest.mark.asyncio
    async def test_projectless_rubric_belongs_to_author(self, session, world):
        service = RubricService(session)
        rubric = await service.create_rubric(world.actor("mentor"), draft())

        with pytest.raises(ForbiddenError):
            await service.delete_rubric(world.actor("instructor"), rubric.id)
        await service.delete_rubric(world.actor("mentor"), rubric.id)

    @pytest.mark.asyncio
    async def test_unknown_rubric(self, session, world):
        with pytest.raises(NotFoundError) as exc_info:
            await RubricService(session).delete_rubric(world.actor("admin"), "missing")

        assert exc_info.value.code == ErrorCode.RUBRIC_NOT_FOUND

    @pytest.mark.asyncio
    async def test_storage_failure_is_opaque(self, session, world, monkeypatch):
        async def locked(self, *args, **kwargs):
            raise OperationalError("SELECT rubrics", {}, Exception("database is locked"))

        monkeypatch.setattr(RubricStore, "get", locked)

        with pytest.raises(InternalError) as exc_info:
            await RubricService(session).delete_rubric(world.actor("admin"), world.draft_rubric_id)

        assert exc_info.value.message == "Failed to delete rubric"
        assert exc_info.value.details["retryable"] is True
