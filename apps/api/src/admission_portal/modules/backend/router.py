"""
Course Catalog Router

Read-only view of the admissions backend's course catalog for the
program-selection step.

Endpoints:
- GET /courses - Active courses with their programs
- GET /courses/{course_slug}/programs - Active programs of one course
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from admission_portal.core.errors import PortalServiceError, internal_error, to_http_exception
from admission_portal.modules.applications.dependencies import get_catalog

from .catalog import CourseCatalog
from .schemas import Course, Program

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[Course])
async def list_courses(catalog: CourseCatalog = Depends(get_catalog)) -> list[Course]:
    try:
        return await catalog.active_courses()
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, "fetching courses") from e


@router.get("/{course_slug}/programs", response_model=list[Program])
async def list_programs(
    course_slug: str,
    catalog: CourseCatalog = Depends(get_catalog),
) -> list[Program]:
    """Active programs of an active course. Unknown courses give 404."""
    try:
        courses = await catalog.active_courses()
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, "fetching programs") from e

    course = next((c for c in courses if c.slug == course_slug), None)
    if course is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "COURSE_NOT_FOUND", "message": f"Course not found: {course_slug}"},
        )
    return [program for program in course.programs if program.is_active]
