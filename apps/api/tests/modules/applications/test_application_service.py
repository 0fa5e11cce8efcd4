"""
Unit tests for the applications service layer.

These tests cover:
- Field validation for personal info, academic details and program selection
- Step submission: progress sync, advancing, and failures that keep the step
- Sidebar navigation
- Hydrating the session from a signup or login response
"""

from unittest.mock import AsyncMock

import pytest

from admission_portal.modules.applications.schemas import (
    AcademicDetails,
    ApplicationStep,
    PersonalInfo,
    UserType,
)
from admission_portal.modules.applications.service import (
    MissingConfigurationError,
    NavigationNotAllowedError,
    ProgramNotFoundError,
    StepValidationError,
    apply_login_response,
    go_to_step,
    submit_step,
    validate_academic_details,
    validate_personal_info,
)
from admission_portal.modules.backend.client import BackendError
from admission_portal.modules.backend.schemas import AuthResponse


class TestValidatePersonalInfo:
    """Tests for personal-info validation."""

    def test_complete_section_passes(self, personal_info):
        assert validate_personal_info(personal_info) == {}

    def test_empty_section_reports_required_fields(self):
        errors = validate_personal_info(PersonalInfo())
        assert errors["firstName"] == "First name is required"
        assert errors["aadharNumber"] == "Aadhar number is required"
        assert errors["mothersQualification"] == "Mother's qualification is required"
        # Optional fields are never required
        assert "temporaryAddress" not in errors
        assert "localGuardianName" not in errors

    @pytest.mark.parametrize(
        ("field", "value", "message"),
        [
            ("email", "not-an-email", "Email is invalid"),
            ("phone", "12345", "Phone number must be 10 digits"),
            ("aadhar_number", "1234", "Aadhar number must be 12 digits"),
            ("pincode", "34200", "Pincode must be 6 digits"),
            ("fathers_phone", "98765abcde", "Phone number must be 10 digits"),
        ],
    )
    def test_format_checks(self, personal_info, field, value, message):
        invalid = personal_info.model_copy(update={field: value})
        errors = validate_personal_info(invalid)
        assert message in errors.values()
        assert len(errors) == 1

    def test_whitespace_counts_as_missing(self, personal_info):
        errors = validate_personal_info(personal_info.model_copy(update={"city": "   "}))
        assert errors == {"city": "City is required"}


class TestValidateAcademicDetails:
    """Tests for academic-details validation."""

    def test_school_records_only_pass(self, academic_details):
        assert validate_academic_details(academic_details) == {}

    def test_tenth_and_twelfth_are_required(self):
        errors = validate_academic_details(AcademicDetails())
        assert errors["tenthBoard"] == "10th board is required"
        assert errors["twelfthStream"] == "12th stream is required"
        assert not any(key.startswith("diploma") for key in errors)

    @pytest.mark.parametrize("value", ["101", "-1", "abc"])
    def test_percentage_range(self, academic_details, value):
        errors = validate_academic_details(
            academic_details.model_copy(update={"tenth_percentage": value})
        )
        assert errors == {"tenthPercentage": "Please enter a valid percentage (0-100)"}

    def test_partial_diploma_requires_the_rest(self, academic_details):
        errors = validate_academic_details(
            academic_details.model_copy(update={"diploma_institution": "Govt Polytechnic"})
        )
        assert set(errors) == {"diplomaStream", "diplomaPercentage", "diplomaYear"}

    def test_partial_graduation_requires_the_rest(self, academic_details):
        errors = validate_academic_details(
            academic_details.model_copy(update={"graduation_year": "2024"})
        )
        assert set(errors) == {"graduationUniversity", "graduationPercentage"}


class TestSubmitStep:
    """Tests for submit_step."""

    @pytest.mark.asyncio
    async def test_personal_info_syncs_and_advances(
        self, new_applicant, mock_backend, mock_catalog, personal_info
    ):
        await new_applicant.update_application_data({"personal_info": personal_info})

        step = await submit_step(
            new_applicant, mock_backend, mock_catalog, ApplicationStep.PERSONAL_INFO
        )

        assert step == ApplicationStep.ACADEMIC_DETAILS
        assert new_applicant.current_step == ApplicationStep.ACADEMIC_DETAILS
        mock_backend.save_progress.assert_awaited_once()
        form_id, payload = mock_backend.save_progress.await_args.args
        assert form_id == "form-1"
        assert payload["personalInfo"]["firstName"] == "Asha"

    @pytest.mark.asyncio
    async def test_validation_failure_makes_no_network_call(
        self, new_applicant, mock_backend, mock_catalog
    ):
        with pytest.raises(StepValidationError) as exc_info:
            await submit_step(
                new_applicant, mock_backend, mock_catalog, ApplicationStep.PERSONAL_INFO
            )

        assert exc_info.value.status_code == 422
        assert "firstName" in exc_info.value.errors
        mock_backend.save_progress.assert_not_called()
        assert new_applicant.current_step == ApplicationStep.PERSONAL_INFO

    @pytest.mark.asyncio
    async def test_missing_admission_form_id(self, manager, mock_backend, mock_catalog, personal_info):
        await manager.update_application_data({"personal_info": personal_info})

        with pytest.raises(MissingConfigurationError, match="Admission form ID not found"):
            await submit_step(manager, mock_backend, mock_catalog, ApplicationStep.PERSONAL_INFO)

        mock_backend.save_progress.assert_not_called()

    @pytest.mark.asyncio
    async def test_backend_error_keeps_current_step(
        self, new_applicant, mock_backend, mock_catalog, personal_info
    ):
        await new_applicant.update_application_data({"personal_info": personal_info})
        mock_backend.save_progress = AsyncMock(side_effect=BackendError("Failed to save progress"))

        with pytest.raises(BackendError):
            await submit_step(
                new_applicant, mock_backend, mock_catalog, ApplicationStep.PERSONAL_INFO
            )

        assert new_applicant.current_step == ApplicationStep.PERSONAL_INFO

    @pytest.mark.asyncio
    async def test_upcoming_step_cannot_be_submitted(
        self, new_applicant, mock_backend, mock_catalog
    ):
        with pytest.raises(NavigationNotAllowedError):
            await submit_step(new_applicant, mock_backend, mock_catalog, ApplicationStep.REVIEW)

    @pytest.mark.asyncio
    async def test_program_selection_denormalises_catalog_ids(
        self, new_applicant, mock_backend, mock_catalog, program_selection
    ):
        await new_applicant.update_application_data({"program_selection": program_selection})
        await new_applicant.set_current_step(ApplicationStep.PROGRAM_SELECTION)

        step = await submit_step(
            new_applicant, mock_backend, mock_catalog, ApplicationStep.PROGRAM_SELECTION
        )

        assert step == ApplicationStep.REVIEW
        mock_catalog.find_program.assert_awaited_once_with("design", "interior-design")
        selection = new_applicant.application_data.program_selection
        assert selection.program_id == "prog-1"
        assert selection.program_slug == "interior-design"
        assert selection.course_slug == "design"
        assert selection.duration == "4 years"
        assert selection.description == "Spaces and materials"
        payload = mock_backend.save_progress.await_args.args[1]
        assert payload["programSelection"]["programId"] == "prog-1"

    @pytest.mark.asyncio
    async def test_program_selection_requires_campus(
        self, new_applicant, mock_backend, mock_catalog, program_selection
    ):
        await new_applicant.update_application_data(
            {"program_selection": program_selection.model_copy(update={"campus": ""})}
        )
        await new_applicant.set_current_step(ApplicationStep.PROGRAM_SELECTION)

        with pytest.raises(StepValidationError) as exc_info:
            await submit_step(
                new_applicant, mock_backend, mock_catalog, ApplicationStep.PROGRAM_SELECTION
            )

        assert exc_info.value.errors == {"campus": "Campus is required"}
        mock_catalog.find_program.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_program(self, new_applicant, mock_backend, mock_catalog, program_selection):
        await new_applicant.update_application_data({"program_selection": program_selection})
        await new_applicant.set_current_step(ApplicationStep.PROGRAM_SELECTION)
        mock_catalog.find_program = AsyncMock(return_value=None)

        with pytest.raises(ProgramNotFoundError):
            await submit_step(
                new_applicant, mock_backend, mock_catalog, ApplicationStep.PROGRAM_SELECTION
            )

        mock_backend.save_progress.assert_not_called()

    @pytest.mark.asyncio
    async def test_review_requires_terms(self, new_applicant, mock_backend, mock_catalog):
        await new_applicant.set_current_step(ApplicationStep.REVIEW)

        with pytest.raises(StepValidationError) as exc_info:
            await submit_step(new_applicant, mock_backend, mock_catalog, ApplicationStep.REVIEW)

        assert "agreedToTerms" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_review_assigns_application_id_and_goes_to_payment(
        self, new_applicant, mock_backend, mock_catalog
    ):
        await new_applicant.set_current_step(ApplicationStep.REVIEW)

        step = await submit_step(
            new_applicant,
            mock_backend,
            mock_catalog,
            ApplicationStep.REVIEW,
            agreed_to_terms=True,
        )

        assert step == ApplicationStep.PAYMENT
        application_id = new_applicant.application_data.application_id
        assert application_id.startswith("APP")
        assert len(application_id) == 11
        payload = mock_backend.save_progress.await_args.args[1]
        assert payload["applicationId"] == application_id

    @pytest.mark.asyncio
    async def test_review_keeps_existing_application_id(
        self, new_applicant, mock_backend, mock_catalog
    ):
        await new_applicant.update_application_data({"application_id": "APP00000001"})
        await new_applicant.set_current_step(ApplicationStep.REVIEW)

        await submit_step(
            new_applicant, mock_backend, mock_catalog, ApplicationStep.REVIEW, agreed_to_terms=True
        )

        assert new_applicant.application_data.application_id == "APP00000001"

    @pytest.mark.asyncio
    async def test_payment_step_is_not_submitted_here(
        self, new_applicant, mock_backend, mock_catalog
    ):
        await new_applicant.set_current_step(ApplicationStep.PAYMENT)

        with pytest.raises(NavigationNotAllowedError):
            await submit_step(new_applicant, mock_backend, mock_catalog, ApplicationStep.PAYMENT)


class TestGoToStep:
    @pytest.mark.asyncio
    async def test_back_navigation_allowed(self, new_applicant):
        await new_applicant.set_current_step(ApplicationStep.REVIEW)
        assert await go_to_step(new_applicant, ApplicationStep.PERSONAL_INFO) == ApplicationStep.PERSONAL_INFO
        assert new_applicant.current_step == ApplicationStep.PERSONAL_INFO

    @pytest.mark.asyncio
    async def test_forward_navigation_rejected(self, new_applicant):
        with pytest.raises(NavigationNotAllowedError):
            await go_to_step(new_applicant, ApplicationStep.PAYMENT)
        assert new_applicant.current_step == ApplicationStep.PERSONAL_INFO


def auth_response(admission_form: dict | str | None = None, payments: list | None = None) -> AuthResponse:
    user = {
        "_id": "user-1",
        "name": "Asha Rao",
        "email": "asha@example.com",
        "sessionToken": "tok",
        "paymentInformation": payments or [],
    }
    if admission_form is not None:
        user["admissionFormId"] = admission_form
    return AuthResponse.model_validate({"success": True, "message": "ok", "data": user})


class TestApplyLoginResponse:
    """Tests for apply_login_response."""

    @pytest.mark.asyncio
    async def test_new_account_starts_at_personal_info(self, manager, persistence):
        step = await apply_login_response(manager, auth_response("form-9"), "asha@example.com")

        assert step == ApplicationStep.PERSONAL_INFO
        assert manager.user_type == UserType.NEW
        assert manager.login_data.is_authenticated
        assert manager.login_data.user_id == "user-1"
        assert await persistence.get_user_id() == "user-1"
        assert await persistence.get_admission_form_id() == "form-9"

    @pytest.mark.asyncio
    async def test_profile_fields_are_restored(self, manager):
        form = {
            "_id": "form-9",
            "firstName": "Asha",
            "lastName": "Rao",
            "tenthBoard": "CBSE",
            "programType": "design",
            "applicationId": "APP12345678",
        }
        await apply_login_response(manager, auth_response(form), "asha@example.com")

        data = manager.application_data
        assert data.personal_info.first_name == "Asha"
        assert data.academic_details.tenth_board == "CBSE"
        assert data.program_selection.program_type == "design"
        assert data.application_id == "APP12345678"

    @pytest.mark.asyncio
    async def test_completed_application_lands_on_success(self, manager):
        form = {"_id": "form-9", "applicationStatus": "completed", "paymentComplete": True}
        payments = [{"_id": "pay-1", "totalAmountPaid": 1000, "totalFee": 51000}]

        step = await apply_login_response(manager, auth_response(form, payments), "a@b.com")

        assert step == ApplicationStep.SUCCESS
        assert manager.application_data.payment_complete

    @pytest.mark.asyncio
    async def test_paid_application_lands_on_review(self, manager):
        form = {"_id": "form-9", "paymentComplete": True}
        payments = [{"_id": "pay-1", "totalAmountPaid": 1000}]

        step = await apply_login_response(manager, auth_response(form, payments), "a@b.com")

        assert step == ApplicationStep.REVIEW

    @pytest.mark.asyncio
    async def test_login_state_survives_reinitialize(self, manager, persistence):
        from admission_portal.modules.applications.state import ApplicationStateManager

        await apply_login_response(manager, auth_response("form-9"), "asha@example.com")

        restored = ApplicationStateManager(persistence)
        await restored.initialize()
        assert restored.user_type == UserType.NEW
        assert restored.login_data.email == "asha@example.com"

    @pytest.mark.asyncio
    async def test_response_without_user(self, manager):
        response = AuthResponse(success=False, message="Invalid credentials")
        with pytest.raises(Exception, match="Invalid credentials") as exc_info:
            await apply_login_response(manager, response, "a@b.com")
        assert exc_info.value.status_code == 401
