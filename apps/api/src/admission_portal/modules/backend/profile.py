"""
Profile conversion

Turns the backend's user profile (flat admission form + payment records)
into the wizard's ApplicationData.
"""

import logging
from datetime import datetime
from typing import Any

from admission_portal.modules.applications.schemas import (
    AcademicDetails,
    ApplicationData,
    ApplicationStep,
    DocumentKind,
    DocumentRef,
    PaymentDetails,
    PaymentOption,
    PersonalInfo,
    ProgramSelection,
    RandomDocument,
)

from .schemas import AdmissionForm, BackendUser, PaymentInformation

logger = logging.getLogger(__name__)

# Backend form field holding each document's URL
DOCUMENT_FIELDS: dict[DocumentKind, str] = {
    DocumentKind.PROFILE_PHOTO: "profilePhoto",
    DocumentKind.SIGNATURE: "signature",
    DocumentKind.AADHAR_CARD: "aadharCard",
    DocumentKind.TENTH_MARKSHEET: "tenthMarksheet",
    DocumentKind.TWELFTH_MARKSHEET: "twelfthMarksheet",
    DocumentKind.DIPLOMA_MARKSHEET: "diplomaMarksheet",
    DocumentKind.GRADUATION_MARKSHEET: "graduationMarksheet",
}


def _text(form: AdmissionForm, name: str) -> str:
    value = form.field(name)
    return "" if value is None else str(value)


def _date_only(value: str) -> str:
    if not value:
        return ""
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return value


def _section(model: type, form: AdmissionForm, skip: tuple[str, ...] = ()) -> Any:
    values = {}
    for name, info in model.model_fields.items():
        if name in skip:
            continue
        values[name] = _text(form, info.alias or name)
    return model.model_validate(values)


def _random_documents(form: AdmissionForm) -> list[RandomDocument]:
    documents = form.field("documents") or {}
    items = documents.get("randomDocuments", []) if isinstance(documents, dict) else []
    result = []
    for item in items:
        if isinstance(item, dict) and item.get("id") and item.get("name"):
            result.append(
                RandomDocument(id=str(item["id"]), name=str(item["name"]), url=item.get("url"))
            )
    return result


def _payment_details(payment: PaymentInformation) -> PaymentDetails:
    transaction_id = (
        payment.payment_transactions[0].transaction_id if payment.payment_transactions else ""
    )
    return PaymentDetails(
        order_id=payment.id or "",
        payment_id=transaction_id,
        amount=payment.total_amount_paid,
        application_fee=payment.registration_fee,
        full_course_amount=payment.total_fee,
        remaining_amount=payment.total_amount_due,
        payment_option=PaymentOption.CUSTOM,
        timestamp=payment.last_payment_date or "",
    )


def convert_profile_to_application_data(user: BackendUser) -> ApplicationData | None:
    """
    Build ApplicationData from a backend profile.

    Returns None when the profile has no admission form yet.
    """
    form = user.admission_form_id
    if form is None:
        return None

    personal_info = _section(PersonalInfo, form, skip=("random_documents",))
    personal_info.date_of_birth = _date_only(personal_info.date_of_birth)
    personal_info.random_documents = _random_documents(form)

    documents = {}
    for kind, field_name in DOCUMENT_FIELDS.items():
        url = _text(form, field_name)
        if url:
            documents[kind] = DocumentRef(url=url)

    latest_payment = user.payment_information[0] if user.payment_information else None
    payment_details = _payment_details(latest_payment) if latest_payment else None
    payment_complete = bool(form.payment_complete)
    if payment_complete and payment_details is None:
        logger.warning(f"Profile {user.id} marked paid without payment records")
        payment_complete = False

    return ApplicationData(
        personal_info=personal_info,
        academic_details=_section(AcademicDetails, form),
        documents=documents,
        program_selection=ProgramSelection(
            program_type=_text(form, "programType"),
            program_name=_text(form, "programName"),
            program_category=_text(form, "programCategory"),
            specialization=_text(form, "specialization"),
            campus=_text(form, "campus"),
        ),
        payment_complete=payment_complete,
        payment_details=payment_details,
        current_step=ApplicationStep.PERSONAL_INFO,
        is_complete=form.application_status == "completed",
        submitted_at=form.submitted_at,
        application_id=form.application_id,
    )


def step_for_profile(application_data: ApplicationData | None) -> ApplicationStep:
    """Where a returning applicant lands: success, review or the first step."""
    if application_data is None:
        return ApplicationStep.PERSONAL_INFO
    if application_data.is_complete:
        return ApplicationStep.SUCCESS
    if application_data.payment_complete:
        return ApplicationStep.REVIEW
    return ApplicationStep.PERSONAL_INFO
