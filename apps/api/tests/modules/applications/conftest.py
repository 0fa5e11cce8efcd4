"""
Fixtures for applications tests.
"""

from unittest.mock import AsyncMock

import pytest

from admission_portal.modules.applications.schemas import (
    AcademicDetails,
    PersonalInfo,
    ProgramSelection,
    UserType,
)
from admission_portal.modules.backend.catalog import ProgramLookup
from admission_portal.modules.backend.schemas import Course, FeeStructure, Program


@pytest.fixture
def personal_info():
    """A personal-info section that passes validation."""
    return PersonalInfo(
        first_name="Asha",
        last_name="Rao",
        email="asha@example.com",
        phone="9876543210",
        date_of_birth="2005-04-12",
        gender="Female",
        religion="Hindu",
        aadhar_number="123412341234",
        permanent_address="12 MG Road",
        city="Jodhpur",
        state="Rajasthan",
        pincode="342001",
        fathers_name="Ravi Rao",
        fathers_phone="9876500000",
        fathers_occupation="Engineer",
        fathers_qualification="B.Tech",
        mothers_name="Meena Rao",
        mothers_phone="9876511111",
        mothers_occupation="Teacher",
        mothers_qualification="M.A.",
    )


@pytest.fixture
def academic_details():
    return AcademicDetails(
        tenth_board="CBSE",
        tenth_institution="KV No. 1",
        tenth_percentage="91.2",
        tenth_year="2021",
        twelfth_board="CBSE",
        twelfth_institution="KV No. 1",
        twelfth_stream="Science",
        twelfth_percentage="88",
        twelfth_year="2023",
    )


@pytest.fixture
def program_selection():
    return ProgramSelection(
        program_type="design",
        program_name="interior-design",
        program_category="Design",
        specialization="Interior Design",
        campus="Jodhpur",
    )


@pytest.fixture
def program_lookup():
    program = Program(
        _id="prog-1",
        slug="interior-design",
        title="B.Des Interior Design",
        duration="4 years",
        short_description="Spaces and materials",
        fee_structure=FeeStructure(total_fee=50000, registration_fee=1000),
    )
    course = Course(_id="course-1", slug="design", title="Design", programs=[program])
    return ProgramLookup(course=course, program=program)


@pytest.fixture
def mock_backend():
    """Admissions backend client with every call mocked."""
    backend = AsyncMock()
    backend.save_progress = AsyncMock(return_value={"success": True})
    return backend


@pytest.fixture
def mock_catalog(program_lookup):
    catalog = AsyncMock()
    catalog.find_program = AsyncMock(return_value=program_lookup)
    catalog.get_fee_structure = AsyncMock(return_value=program_lookup)
    return catalog


@pytest.fixture
async def new_applicant(manager, persistence):
    """A logged-in new applicant with an admission form id."""
    await manager.update_login_data({"email": "asha@example.com", "is_authenticated": True})
    await manager.set_user_type(UserType.NEW)
    await persistence.save_admission_form_id("form-1")
    return manager
