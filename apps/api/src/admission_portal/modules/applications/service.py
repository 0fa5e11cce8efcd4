"""
Applications Service Layer

Step submission for the admission wizard and hydration of the session
after signup or login.

This module implements:
1. Step submission:
   - Validate the step's required fields (no network call on failure)
   - Push progress to the admissions backend under the admission form id
   - Advance the wizard only after the backend accepted the progress

2. Program selection:
   - Look the program up in the course catalog
   - Copy catalog identifiers onto the selection before saving

3. Login response handling:
   - Store login data, user id and admission form id
   - Rebuild application data from the backend profile
   - Land on success, review or the first step
"""

import logging
import re
from typing import Any

from fastapi import status

from admission_portal.core.errors import PortalServiceError
from admission_portal.modules.backend.catalog import CourseCatalog
from admission_portal.modules.backend.client import BackendClient
from admission_portal.modules.backend.profile import (
    convert_profile_to_application_data,
    step_for_profile,
)
from admission_portal.modules.backend.schemas import AuthResponse

from .schemas import (
    AcademicDetails,
    ApplicationData,
    ApplicationStep,
    PersonalInfo,
    UserType,
    generate_application_id,
)
from .state import ApplicationStateManager
from .wizard import can_navigate, next_step

logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
_PHONE_PATTERN = re.compile(r"^\d{10}$")
_AADHAR_PATTERN = re.compile(r"^\d{12}$")
_PINCODE_PATTERN = re.compile(r"^\d{6}$")


class StepValidationError(PortalServiceError):
    """A step was submitted with missing or malformed fields."""

    error_code = "VALIDATION_ERROR"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, errors: dict[str, str], message: str = "Please fix the highlighted fields"):
        self.errors = errors
        super().__init__(message)


class MissingConfigurationError(PortalServiceError):
    error_code = "ADMISSION_FORM_NOT_FOUND"
    status_code = status.HTTP_409_CONFLICT


class NavigationNotAllowedError(PortalServiceError):
    error_code = "NAVIGATION_NOT_ALLOWED"
    status_code = status.HTTP_409_CONFLICT


class ProgramNotFoundError(PortalServiceError):
    error_code = "PROGRAM_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


# Validation


def _require(errors: dict[str, str], field: str, value: str, message: str) -> bool:
    if not (value or "").strip():
        errors[field] = message
        return False
    return True


def _check_percentage(errors: dict[str, str], field: str, value: str) -> None:
    try:
        number = float(value)
    except ValueError:
        number = -1
    if not 0 <= number <= 100:
        errors[field] = "Please enter a valid percentage (0-100)"


def validate_personal_info(info: PersonalInfo) -> dict[str, str]:
    errors: dict[str, str] = {}

    _require(errors, "firstName", info.first_name, "First name is required")
    _require(errors, "lastName", info.last_name, "Last name is required")
    if _require(errors, "email", info.email, "Email is required"):
        if not _EMAIL_PATTERN.search(info.email):
            errors["email"] = "Email is invalid"
    if _require(errors, "phone", info.phone, "Phone number is required"):
        if not _PHONE_PATTERN.match(info.phone):
            errors["phone"] = "Phone number must be 10 digits"
    _require(errors, "dateOfBirth", info.date_of_birth, "Date of birth is required")
    _require(errors, "gender", info.gender, "Gender is required")
    _require(errors, "religion", info.religion, "Religion is required")
    if _require(errors, "aadharNumber", info.aadhar_number, "Aadhar number is required"):
        if not _AADHAR_PATTERN.match(info.aadhar_number):
            errors["aadharNumber"] = "Aadhar number must be 12 digits"
    _require(errors, "permanentAddress", info.permanent_address, "Permanent address is required")
    _require(errors, "city", info.city, "City is required")
    _require(errors, "state", info.state, "State is required")
    if _require(errors, "pincode", info.pincode, "Pincode is required"):
        if not _PINCODE_PATTERN.match(info.pincode):
            errors["pincode"] = "Pincode must be 6 digits"

    _require(errors, "fathersName", info.fathers_name, "Father's name is required")
    if _require(errors, "fathersPhone", info.fathers_phone, "Father's phone is required"):
        if not _PHONE_PATTERN.match(info.fathers_phone):
            errors["fathersPhone"] = "Phone number must be 10 digits"
    _require(errors, "fathersOccupation", info.fathers_occupation, "Father's occupation is required")
    _require(
        errors, "fathersQualification", info.fathers_qualification, "Father's qualification is required"
    )
    _require(errors, "mothersName", info.mothers_name, "Mother's name is required")
    if _require(errors, "mothersPhone", info.mothers_phone, "Mother's phone is required"):
        if not _PHONE_PATTERN.match(info.mothers_phone):
            errors["mothersPhone"] = "Phone number must be 10 digits"
    _require(errors, "mothersOccupation", info.mothers_occupation, "Mother's occupation is required")
    _require(
        errors, "mothersQualification", info.mothers_qualification, "Mother's qualification is required"
    )
    return errors


def validate_academic_details(details: AcademicDetails) -> dict[str, str]:
    errors: dict[str, str] = {}

    _require(errors, "tenthBoard", details.tenth_board, "10th board is required")
    _require(errors, "tenthInstitution", details.tenth_institution, "10th institution name is required")
    if _require(errors, "tenthPercentage", details.tenth_percentage, "10th percentage is required"):
        _check_percentage(errors, "tenthPercentage", details.tenth_percentage)
    _require(errors, "tenthYear", details.tenth_year, "10th passing year is required")

    _require(errors, "twelfthBoard", details.twelfth_board, "12th board is required")
    _require(
        errors, "twelfthInstitution", details.twelfth_institution, "12th institution name is required"
    )
    _require(errors, "twelfthStream", details.twelfth_stream, "12th stream is required")
    if _require(errors, "twelfthPercentage", details.twelfth_percentage, "12th percentage is required"):
        _check_percentage(errors, "twelfthPercentage", details.twelfth_percentage)
    _require(errors, "twelfthYear", details.twelfth_year, "12th passing year is required")

    # Diploma and graduation are optional, but all-or-nothing
    if any(
        (
            details.diploma_institution,
            details.diploma_stream,
            details.diploma_percentage,
            details.diploma_year,
        )
    ):
        _require(
            errors,
            "diplomaInstitution",
            details.diploma_institution,
            "Diploma institution name is required",
        )
        _require(errors, "diplomaStream", details.diploma_stream, "Diploma stream is required")
        if _require(
            errors, "diplomaPercentage", details.diploma_percentage, "Diploma percentage is required"
        ):
            _check_percentage(errors, "diplomaPercentage", details.diploma_percentage)
        _require(errors, "diplomaYear", details.diploma_year, "Diploma year is required")

    if any((details.graduation_university, details.graduation_percentage, details.graduation_year)):
        _require(
            errors, "graduationUniversity", details.graduation_university, "University name is required"
        )
        if _require(
            errors,
            "graduationPercentage",
            details.graduation_percentage,
            "Graduation percentage is required",
        ):
            _check_percentage(errors, "graduationPercentage", details.graduation_percentage)
        _require(errors, "graduationYear", details.graduation_year, "Graduation year is required")

    return errors


def validate_program_selection(data: ApplicationData) -> dict[str, str]:
    selection = data.program_selection
    errors: dict[str, str] = {}
    _require(errors, "programType", selection.program_type, "Course is required")
    _require(errors, "programName", selection.program_name, "Program is required")
    _require(errors, "campus", selection.campus, "Campus is required")
    return errors


# Step submission


async def _push_progress(manager: ApplicationStateManager, backend: BackendClient) -> None:
    admission_form_id = await manager.persistence.get_admission_form_id()
    if not admission_form_id:
        raise MissingConfigurationError("Admission form ID not found")
    await backend.save_progress(admission_form_id, manager.application_data.save_progress_payload())


async def submit_step(
    manager: ApplicationStateManager,
    backend: BackendClient,
    catalog: CourseCatalog,
    step: ApplicationStep,
    agreed_to_terms: bool = False,
) -> ApplicationStep:
    """
    Validate and submit one wizard step, then advance.

    Returns:
        The new current step

    Raises:
        NavigationNotAllowedError: step is not reachable from the current step
        StepValidationError: required fields are missing (nothing is sent)
        MissingConfigurationError: no admission form id for this session
        ProgramNotFoundError: the selected program is not in the catalog
        BackendError: the backend rejected the progress (step not advanced)
    """
    if not can_navigate(step, manager.current_step, manager.user_type):
        raise NavigationNotAllowedError(f"Complete the previous steps before {step.value}")

    data = manager.application_data

    if step == ApplicationStep.PERSONAL_INFO:
        errors = validate_personal_info(data.personal_info)
    elif step == ApplicationStep.ACADEMIC_DETAILS:
        errors = validate_academic_details(data.academic_details)
    elif step == ApplicationStep.PROGRAM_SELECTION:
        errors = validate_program_selection(data)
    elif step == ApplicationStep.REVIEW:
        errors = {} if agreed_to_terms else {"agreedToTerms": "Please accept the terms to continue"}
    else:
        raise NavigationNotAllowedError(f"Step {step.value} cannot be submitted")

    if errors:
        raise StepValidationError(errors)

    if step == ApplicationStep.PROGRAM_SELECTION:
        await _attach_program(manager, catalog)
    elif step == ApplicationStep.REVIEW and not data.application_id:
        await manager.update_application_data({"application_id": generate_application_id()})

    await _push_progress(manager, backend)

    target = next_step(step, manager.user_type) or step
    await manager.set_current_step(target)
    logger.info(f"Session {manager.persistence.session_id} submitted {step.value} -> {target.value}")
    return target


async def _attach_program(manager: ApplicationStateManager, catalog: CourseCatalog) -> None:
    selection = manager.application_data.program_selection
    lookup = await catalog.find_program(selection.program_type, selection.program_name)
    if lookup is None:
        raise ProgramNotFoundError("Selected program is no longer available")

    program = lookup.program
    await manager.update_section(
        "program_selection",
        {
            "program_id": program.id,
            "program_slug": program.slug,
            "course_slug": lookup.course.slug,
            "duration": program.duration,
            "description": program.short_description or program.description,
        },
    )


# Navigation


async def go_to_step(manager: ApplicationStateManager, step: ApplicationStep) -> ApplicationStep:
    """Sidebar navigation: only completed or current steps can be opened."""
    if not can_navigate(step, manager.current_step, manager.user_type):
        raise NavigationNotAllowedError(f"Step {step.value} is not available yet")
    await manager.set_current_step(step)
    return step


# Login


async def apply_login_response(
    manager: ApplicationStateManager,
    response: AuthResponse,
    email: str,
) -> ApplicationStep:
    """
    Hydrate the session from a successful signup or login.

    Returns:
        The step the applicant lands on
    """
    user = response.data
    if user is None:
        raise PortalServiceError(
            response.message or "Login failed. Please check your credentials.",
            error_code="AUTHENTICATION_FAILED",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    persistence = manager.persistence
    await manager.update_login_data(
        {
            "email": email,
            "user_id": user.id,
            "token": user.session_token,
            "is_authenticated": True,
        }
    )
    await persistence.save_user_id(user.id)
    if user.admission_form_id is not None and user.admission_form_id.id:
        await persistence.save_admission_form_id(user.admission_form_id.id)

    application_data = convert_profile_to_application_data(user)
    if application_data is not None:
        await manager.update_application_data(_top_level(application_data))

    step = step_for_profile(application_data)
    await manager.set_current_step(step)
    await manager.set_user_type(UserType.NEW)

    logger.info(f"User {user.id} signed in on session {persistence.session_id} at {step.value}")
    return step


def _top_level(data: ApplicationData) -> dict[str, Any]:
    return {name: getattr(data, name) for name in ApplicationData.model_fields}
