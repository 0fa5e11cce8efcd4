"""
Course Catalog

Lookups over the course catalog fetched from the admissions backend.
"""

import logging
from dataclasses import dataclass

from .client import BackendClient
from .schemas import Course, EmiOption, FeeStructure, Program

logger = logging.getLogger(__name__)


@dataclass
class ProgramLookup:
    course: Course
    program: Program

    @property
    def fee_structure(self) -> FeeStructure | None:
        return self.program.fee_structure


def active_courses(courses: list[Course]) -> list[Course]:
    return [course for course in courses if course.is_active]


def all_programs(courses: list[Course]) -> list[Program]:
    return [program for course in active_courses(courses) for program in course.programs]


def programs_by_course(courses: list[Course], course_slug: str) -> list[Program]:
    for course in active_courses(courses):
        if course.slug == course_slug:
            return course.programs
    return []


def find_program(courses: list[Course], course_slug: str, program_slug: str) -> ProgramLookup | None:
    """Find an active program of an active course by slugs."""
    course = next((c for c in courses if c.slug == course_slug and c.is_active), None)
    if course is None:
        logger.info(f"Course not found: {course_slug}")
        return None
    program = next((p for p in course.programs if p.slug == program_slug and p.is_active), None)
    if program is None:
        logger.info(f"Program not found: {program_slug}")
        return None
    return ProgramLookup(course=course, program=program)


class CourseCatalog:
    """Catalog access through the backend client."""

    def __init__(self, client: BackendClient):
        self.client = client

    async def courses(self) -> list[Course]:
        response = await self.client.get_courses()
        return response.data

    async def active_courses(self) -> list[Course]:
        return active_courses(await self.courses())

    async def all_programs(self) -> list[Program]:
        return all_programs(await self.courses())

    async def programs_by_course(self, course_slug: str) -> list[Program]:
        return programs_by_course(await self.courses(), course_slug)

    async def find_program(self, course_slug: str, program_slug: str) -> ProgramLookup | None:
        return find_program(await self.courses(), course_slug, program_slug)

    async def get_fee_structure(self, course_slug: str, program_slug: str) -> ProgramLookup | None:
        """
        Program lookup used for fees.

        Returns None when the program is unknown or the catalog cannot be
        fetched, so callers fall back to default fees.
        """
        try:
            return await self.find_program(course_slug, program_slug)
        except Exception as e:
            logger.error(f"Get fee structure error: {e}")
            return None

    async def get_emi_options(self, course_slug: str, program_slug: str) -> list[EmiOption]:
        lookup = await self.get_fee_structure(course_slug, program_slug)
        if lookup is None or lookup.fee_structure is None:
            return []
        return [emi for emi in lookup.fee_structure.emi_options if emi.is_active]
