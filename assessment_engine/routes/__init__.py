"""
assessment_engine/routes/__init__.py
Route registration, mounted under /api by create_app
"""
from fastapi import APIRouter
from assessment_engine.routes import assessments, rubrics

router = APIRouter()

router.include_router(assessments.router)
router.include_router(rubrics.router)
