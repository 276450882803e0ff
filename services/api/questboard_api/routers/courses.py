from __future__ import annotations

from fastapi import APIRouter, HTTPException

from questboard_api.core.config import Settings
from questboard_api.courses import COURSES, get_course, load_questions
from questboard_api.deps import AppSettings

router = APIRouter(prefix="/api/courses", tags=["courses"])


@router.get("")
def list_courses() -> dict[str, object]:
    return {"success": True, "courses": [c.to_wire() for c in COURSES.values()]}


@router.get("/{course_id}/questions")
def course_questions(course_id: str, settings: Settings = AppSettings) -> dict[str, object]:
    course = get_course(course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="unknown course")
    questions = load_questions(course, settings=settings)
    return {
        "success": True,
        "course": course.to_wire(),
        "questions": [q.model_dump(exclude_none=True) for q in questions],
    }
