"""
Application Schemas

Pydantic models for the admission wizard state. Field names are snake_case
in Python and camelCase on the wire and in storage (via the alias
generator), matching the payloads of the remote admissions backend.
"""

import enum
import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self, **kwargs: Any) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", **kwargs)


class UserType(str, enum.Enum):
    """Which track the visitor follows."""

    NEW = "new"
    EXISTING = "existing"


class ApplicationStep(str, enum.Enum):
    """All wizard steps. VIEW_APPLICATION and EDIT_CONTINUE are reserved."""

    PERSONAL_INFO = "personal-info"
    ACADEMIC_DETAILS = "academic-details"
    PROGRAM_SELECTION = "program-selection"
    PAYMENT = "payment"
    REVIEW = "review"
    SUCCESS = "success"
    LOGIN = "login"
    VIEW_APPLICATION = "view-application"
    EDIT_CONTINUE = "edit-continue"


class DocumentKind(str, enum.Enum):
    """Uploaded document slots."""

    PROFILE_PHOTO = "profilePhoto"
    SIGNATURE = "signature"
    AADHAR_CARD = "aadharCard"
    TENTH_MARKSHEET = "tenthMarksheet"
    TWELFTH_MARKSHEET = "twelfthMarksheet"
    DIPLOMA_MARKSHEET = "diplomaMarksheet"
    GRADUATION_MARKSHEET = "graduationMarksheet"


PERSONAL_DOCUMENTS = (DocumentKind.PROFILE_PHOTO, DocumentKind.SIGNATURE, DocumentKind.AADHAR_CARD)
ACADEMIC_DOCUMENTS = (
    DocumentKind.TENTH_MARKSHEET,
    DocumentKind.TWELFTH_MARKSHEET,
    DocumentKind.DIPLOMA_MARKSHEET,
    DocumentKind.GRADUATION_MARKSHEET,
)


class PaymentOption(str, enum.Enum):
    """What a new applicant chooses to pay."""

    APPLICATION = "application"
    COURSE = "course"
    CUSTOM = "custom"


class DocumentRef(CamelModel):
    """An uploaded file: the original file name and its hosted URL."""

    name: str | None = None
    url: str | None = None
    public_id: str | None = None


class RandomDocument(CamelModel):
    id: str
    name: str
    url: str | None = None


class PersonalInfo(CamelModel):
    # Student
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    date_of_birth: str = ""
    gender: str = ""
    religion: str = ""
    aadhar_number: str = ""
    permanent_address: str = ""
    temporary_address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""

    # Parents
    fathers_name: str = ""
    fathers_phone: str = ""
    fathers_occupation: str = ""
    fathers_qualification: str = ""
    mothers_name: str = ""
    mothers_phone: str = ""
    mothers_occupation: str = ""
    mothers_qualification: str = ""
    parents_address: str = ""

    # Local guardian (optional)
    local_guardian_name: str = ""
    local_guardian_phone: str = ""
    local_guardian_occupation: str = ""
    local_guardian_relation: str = ""
    local_guardian_address: str = ""

    random_documents: list[RandomDocument] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class AcademicDetails(CamelModel):
    tenth_board: str = ""
    tenth_institution: str = ""
    tenth_percentage: str = ""
    tenth_year: str = ""

    twelfth_board: str = ""
    twelfth_institution: str = ""
    twelfth_stream: str = ""
    twelfth_percentage: str = ""
    twelfth_year: str = ""

    diploma_institution: str = ""
    diploma_stream: str = ""
    diploma_percentage: str = ""
    diploma_year: str = ""

    graduation_university: str = ""
    graduation_percentage: str = ""
    graduation_year: str = ""

    @property
    def highest_education(self) -> str:
        if self.graduation_university:
            return "Graduation"
        if self.diploma_institution:
            return "Diploma"
        return "12th Standard"


class ProgramSelection(CamelModel):
    program_type: str = ""  # course slug
    program_name: str = ""  # program slug
    program_category: str = ""
    specialization: str = ""
    campus: str = ""

    # Denormalised from the catalog when the step is submitted
    program_id: str | None = None
    program_slug: str | None = None
    course_slug: str | None = None
    duration: str | None = None
    description: str | None = None


class PaymentDetails(CamelModel):
    order_id: str
    payment_id: str
    amount: float
    application_fee: float | None = None
    full_course_amount: float | None = None
    remaining_amount: float | None = None
    payment_option: PaymentOption = PaymentOption.APPLICATION
    discount_amount: float | None = None
    coupon_code: str | None = None
    timestamp: str


class ApplicationData(CamelModel):
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    academic_details: AcademicDetails = Field(default_factory=AcademicDetails)
    documents: dict[DocumentKind, DocumentRef] = Field(default_factory=dict)
    program_selection: ProgramSelection = Field(default_factory=ProgramSelection)
    payment_complete: bool = False
    payment_details: PaymentDetails | None = None
    current_step: ApplicationStep = ApplicationStep.PERSONAL_INFO
    is_complete: bool = False
    submitted_at: str | None = None
    application_id: str | None = None

    @model_validator(mode="after")
    def payment_complete_requires_details(self) -> "ApplicationData":
        if self.payment_complete and self.payment_details is None:
            raise ValueError("payment_details is required when payment_complete is set")
        return self

    def document_url(self, kind: DocumentKind) -> str | None:
        ref = self.documents.get(kind)
        return ref.url if ref else None

    # Read-model projections for the remote backend

    def personal_info_projection(self) -> dict[str, Any]:
        """Personal info with document URLs mirrored under both field names."""
        payload = self.personal_info.to_wire()
        for kind in PERSONAL_DOCUMENTS:
            url = self.document_url(kind)
            payload[f"{kind.value}Url"] = url
            payload[kind.value] = url
        return payload

    def academic_details_projection(self) -> dict[str, Any]:
        """Academic details with marksheet URLs (empty string when missing)."""
        payload = self.academic_details.to_wire()
        for kind in ACADEMIC_DOCUMENTS:
            payload[kind.value] = self.document_url(kind) or ""
        return payload

    def documents_projection(self) -> dict[str, Any]:
        """Documents keyed as both `<kind>Url` and `<kind>`; the photo is also `photo`."""
        payload: dict[str, Any] = {}
        for kind in DocumentKind:
            url = self.document_url(kind)
            payload[f"{kind.value}Url"] = url
            payload[kind.value] = url
        photo_url = self.document_url(DocumentKind.PROFILE_PHOTO)
        payload["photoUrl"] = photo_url
        payload["photo"] = photo_url
        return payload

    def save_progress_payload(self) -> dict[str, Any]:
        """Request body for the backend's save-progress endpoint."""
        return {
            "personalInfo": self.personal_info_projection(),
            "academicDetails": self.academic_details_projection(),
            "documents": self.documents_projection(),
            "programSelection": self.program_selection.to_wire(),
            "paymentComplete": self.payment_complete,
            "paymentDetails": self.payment_details.to_wire() if self.payment_details else None,
            "currentStep": self.current_step.value,
            "isComplete": self.is_complete,
            "submittedAt": self.submitted_at,
            "applicationId": self.application_id,
        }


class LoginData(CamelModel):
    """
    Authentication state for the session.

    The password is accepted in memory but excluded from every dump, so it
    is never written to a store or echoed in a response.
    """

    email: str = ""
    password: str = Field(default="", exclude=True, repr=False)
    user_id: str | None = None
    token: str | None = Field(default=None, repr=False)
    is_authenticated: bool = False


def generate_application_id(now_ms: int | None = None) -> str:
    """`APP` followed by the last 8 digits of the epoch milliseconds."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"APP{str(now_ms)[-8:]}"


# API request and response models


class UserTypeRequest(CamelModel):
    user_type: UserType | None = None


class StepRequest(CamelModel):
    step: ApplicationStep


class SubmitStepRequest(CamelModel):
    agreed_to_terms: bool = False


class StepEntry(CamelModel):
    id: ApplicationStep
    title: str
    status: str
    clickable: bool


class SessionInfo(CamelModel):
    session_id: str
    has_data: bool
    current_step: ApplicationStep
    is_active: bool


class SessionView(CamelModel):
    """Everything the wizard needs to render the current session."""

    user_type: UserType | None = None
    current_step: ApplicationStep
    application_data: ApplicationData
    login_data: LoginData
    steps: list[StepEntry]
    session: SessionInfo


class SubmitStepResponse(CamelModel):
    current_step: ApplicationStep
    application_data: ApplicationData


class FormProgressResponse(CamelModel):
    step_name: str
    data: dict[str, Any] = Field(default_factory=dict)
    has_saved_progress: bool = False


class FormProgressUpdateResponse(CamelModel):
    step_name: str
    scheduled: bool


class FormProgressFlushResponse(CamelModel):
    step_name: str
    saved: bool
