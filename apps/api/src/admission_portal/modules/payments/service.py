"""
Payments Service Layer

Razorpay order creation and verification, plus the payment flows built on
them.

This module implements:
1. Order / verify primitives:
   - create_order: validate the amount, create the gateway order
   - verify_payment: check the checkout signature (HMAC-SHA256)

2. New-applicant checkout:
   - quote_fees: price the chosen option for the selected program
   - start_checkout: create the order and return the widget options
   - complete_payment: verify, submit the admission, mark the application
     complete and send the confirmation email
   - cancel_payment: clear the pending checkout after a dismissal

3. Existing-student portal:
   - open_portal: the session summary, or the backend profile when there is none
   - start_portal_checkout / confirm_portal_payment

Security considerations:
- Signatures are compared in constant time
- A completion is accepted only for the order this session created
- Secrets and signatures are never logged
"""

import logging
import math
import time
from datetime import UTC, datetime
from typing import Any

from fastapi import status

from admission_portal.core.email import send_application_confirmation, send_payment_receipt
from admission_portal.modules.applications.schemas import (
    ApplicationData,
    ApplicationStep,
    CamelModel,
    PaymentDetails,
    PaymentOption,
    generate_application_id,
)
from admission_portal.modules.applications.state import ApplicationStateManager
from admission_portal.modules.backend.catalog import CourseCatalog
from admission_portal.modules.backend.client import BackendClient, BackendError
from admission_portal.modules.backend.schemas import (
    AdmissionSubmission,
    LoginRequest,
    PaymentRecord,
)
from admission_portal.modules.persistence.session import ApplicationPersistence

from .exceptions import (
    CouponError,
    InvalidAmountError,
    MissingPaymentFieldsError,
    PaymentError,
    PaymentVerificationError,
    PortalSessionError,
)
from .fees import FeeBreakdown, calculate_fees
from .gateway import RazorpayGateway
from .portal import (
    LAST_PORTAL_PAYMENT_KEY,
    PENDING_PORTAL_PAYMENT_KEY,
    PaymentPortalData,
    PendingPortalPayment,
    PortalPaymentReceipt,
    PortalPaymentType,
    clear_student,
    find_student,
    load_student,
    save_student,
)

logger = logging.getLogger(__name__)

PENDING_PAYMENT_KEY = "pendingPayment"
PAYMENT_PROCESSING_KEY = "paymentProcessing"

CHECKOUT_NAME = "Admission Portal"
PORTAL_CHECKOUT_NAME = "Inframe Institute"
VERIFICATION_FAILED_MESSAGE = (
    "Payment verification failed. Please contact support with your order reference."
)


class OrderResult(CamelModel):
    order_id: str
    amount: float
    currency: str


class VerificationResult(CamelModel):
    is_ok: bool
    message: str
    order_id: str | None = None
    payment_id: str | None = None


class PendingPayment(CamelModel):
    order_id: str
    fees: FeeBreakdown
    coupon_code: str | None = None
    course_id: str | None = None
    program_id: str | None = None
    created_at: str


class CheckoutResponse(CamelModel):
    options: dict[str, Any]
    fees: FeeBreakdown


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


# Order / verify primitives


def coerce_amount(raw: Any) -> float:
    """Accept numbers and numeric strings; anything else, zero or less is invalid."""
    if raw is None or isinstance(raw, bool):
        raise InvalidAmountError("Invalid amount provided")
    try:
        amount = float(raw)
    except (TypeError, ValueError) as e:
        raise InvalidAmountError("Invalid amount provided") from e
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidAmountError("Invalid amount provided")
    return amount


async def create_order(
    gateway: RazorpayGateway,
    amount: Any,
    notes: dict[str, str] | None = None,
) -> OrderResult:
    """
    Create a gateway order for `amount` rupees.

    Raises:
        InvalidAmountError: amount is missing, non-numeric or not positive
        PaymentConfigurationError: gateway credentials are missing
        GatewayError: the gateway rejected or failed the request
    """
    order = await gateway.create_order(coerce_amount(amount), notes=notes)
    return OrderResult(
        order_id=order.order_id,
        amount=order.amount_minor / 100,
        currency=order.currency,
    )


def verify_payment(
    gateway: RazorpayGateway,
    order_id: str | None,
    payment_id: str | None,
    signature: str | None,
) -> VerificationResult:
    """
    Verify a checkout result.

    Raises:
        MissingPaymentFieldsError: any of the three values is missing
        PaymentConfigurationError: the key secret is missing
        PaymentVerificationError: the signature does not match
    """
    if not order_id or not payment_id or not signature:
        raise MissingPaymentFieldsError("Missing required payment information")

    if not gateway.verify(order_id, payment_id, signature):
        logger.warning(f"Signature mismatch for order {order_id}")
        raise PaymentVerificationError(VERIFICATION_FAILED_MESSAGE)

    logger.info(f"Payment {payment_id} verified for order {order_id}")
    return VerificationResult(
        is_ok=True,
        message="Payment successful",
        order_id=order_id,
        payment_id=payment_id,
    )


# New-applicant checkout


async def quote_fees(
    manager: ApplicationStateManager,
    catalog: CourseCatalog,
    option: PaymentOption,
    custom_amount: Any = None,
    coupon_code: str | None = None,
) -> tuple[FeeBreakdown, str | None, str | None]:
    """Price `option` for the selected program. Returns (fees, course_id, program_id)."""
    selection = manager.application_data.program_selection
    lookup = None
    if selection.program_type and selection.program_name:
        lookup = await catalog.get_fee_structure(selection.program_type, selection.program_name)

    fees = calculate_fees(
        lookup.fee_structure if lookup else None,
        option,
        custom_amount=custom_amount,
        coupon_code=coupon_code,
    )
    course_id = lookup.course.id if lookup else None
    program_id = lookup.program.id if lookup else selection.program_id
    return fees, course_id, program_id


def checkout_options(
    key_id: str | None,
    order: OrderResult,
    application_data: ApplicationData,
    amount_minor: int,
) -> dict[str, Any]:
    """Options for the Razorpay checkout widget."""
    personal = application_data.personal_info
    selection = application_data.program_selection
    return {
        "key": key_id,
        "amount": amount_minor,
        "currency": order.currency,
        "name": CHECKOUT_NAME,
        "description": f"Application fee for {selection.specialization}",
        "order_id": order.order_id,
        "prefill": {
            "name": personal.full_name,
            "email": personal.email,
            "contact": personal.phone,
        },
        "notes": {
            "program": selection.specialization or "Not selected",
            "programType": selection.program_type or "Not selected",
            "campus": selection.campus or "Not selected",
            "applicationId": application_data.application_id or "",
        },
        "theme": {"color": "#3399cc"},
    }


async def start_checkout(
    manager: ApplicationStateManager,
    catalog: CourseCatalog,
    gateway: RazorpayGateway,
    option: PaymentOption,
    custom_amount: Any = None,
    coupon_code: str | None = None,
) -> CheckoutResponse:
    """
    Price the payment, create the order for the amount after any coupon,
    and remember it as this session's pending payment.

    Raises:
        PaymentError: the application is already paid
        InvalidAmountError: the custom amount or the final amount is invalid
        CouponError: a coupon was given and did not apply
    """
    if manager.application_data.payment_complete:
        raise PaymentError(
            "Payment has already been completed for this application",
            error_code="ALREADY_PAID",
            status_code=status.HTTP_409_CONFLICT,
        )

    fees, course_id, program_id = await quote_fees(
        manager, catalog, option, custom_amount, coupon_code
    )
    if fees.coupon is not None and not fees.coupon.is_valid:
        raise CouponError(fees.coupon.error or "Invalid or expired coupon code")
    if fees.final_amount <= 0:
        raise InvalidAmountError("Invalid amount provided")

    application_data = manager.application_data
    if not application_data.application_id:
        application_data = await manager.update_application_data(
            {"application_id": generate_application_id()}
        )

    order = await create_order(
        gateway,
        fees.final_amount,
        notes={"applicationId": application_data.application_id or ""},
    )

    pending = PendingPayment(
        order_id=order.order_id,
        fees=fees,
        coupon_code=fees.coupon.coupon_code if fees.coupon else None,
        course_id=course_id,
        program_id=program_id,
        created_at=_now_iso(),
    )
    await manager.persistence.save_session_value(PENDING_PAYMENT_KEY, pending.to_wire())
    await manager.persistence.save_session_value(PAYMENT_PROCESSING_KEY, True)

    options = checkout_options(
        gateway.key_id,
        order,
        application_data,
        amount_minor=round(order.amount * 100),
    )
    return CheckoutResponse(options=options, fees=fees)


async def _load_pending(persistence: ApplicationPersistence, order_id: str) -> PendingPayment:
    raw = await persistence.get_session_value(PENDING_PAYMENT_KEY)
    if not raw:
        raise PaymentVerificationError(VERIFICATION_FAILED_MESSAGE)
    pending = PendingPayment.model_validate(raw)
    if pending.order_id != order_id:
        logger.warning(f"Completion for order {order_id} does not match pending {pending.order_id}")
        raise PaymentVerificationError(VERIFICATION_FAILED_MESSAGE)
    return pending


async def _resolve_user_id(manager: ApplicationStateManager) -> str:
    stored = await manager.persistence.get_user_id()
    return (
        stored
        or manager.login_data.user_id
        or manager.application_data.application_id
        or f"user_{int(time.time() * 1000)}"
    )


def build_admission_submission(
    application_data: ApplicationData,
    pending: PendingPayment,
    user_id: str,
    payment_id: str,
    order_id: str,
) -> AdmissionSubmission:
    personal = application_data.personal_info
    return AdmissionSubmission(
        user_id=user_id,
        course_id=pending.course_id or "",
        program_id=pending.program_id or "",
        payment_type="full" if pending.fees.payment_option == PaymentOption.COURSE else "other",
        coupon_code=pending.coupon_code,
        initial_payment=pending.fees.base_amount,
        first_name=personal.first_name,
        last_name=personal.last_name,
        date_of_birth=personal.date_of_birth,
        gender=personal.gender,
        address=personal.permanent_address,
        city=personal.city,
        state=personal.state,
        pincode=personal.pincode,
        phone=personal.phone,
        email=personal.email,
        education=application_data.academic_details.highest_education,
        transaction_id=payment_id,
        order_id=order_id,
    )


async def _submit_admission(
    manager: ApplicationStateManager,
    backend: BackendClient,
    pending: PendingPayment,
    payment_id: str,
    order_id: str,
) -> bool:
    if not pending.course_id or not pending.program_id:
        logger.warning(f"Skipping admission submission for order {order_id}: program not in catalog")
        return False

    user_id = await _resolve_user_id(manager)
    submission = build_admission_submission(
        manager.application_data, pending, user_id, payment_id, order_id
    )
    try:
        await backend.submit_admission(submission)
    except BackendError as e:
        logger.error(f"Failed to submit admission for order {order_id}: {e.message}")
        return False
    logger.info(f"Admission submitted for order {order_id}")
    return True


async def complete_payment(
    manager: ApplicationStateManager,
    backend: BackendClient,
    gateway: RazorpayGateway,
    order_id: str | None,
    payment_id: str | None,
    signature: str | None,
) -> ApplicationData:
    """
    Finish a new-applicant payment.

    Verification happens first; on failure the state is left untouched.
    The admission submission to the backend and the confirmation email are
    best-effort and never undo a verified payment.
    """
    verify_payment(gateway, order_id, payment_id, signature)
    pending = await _load_pending(manager.persistence, order_id)

    await _submit_admission(manager, backend, pending, payment_id, order_id)

    fees = pending.fees
    now = _now_iso()
    details = PaymentDetails(
        order_id=order_id,
        payment_id=payment_id,
        amount=fees.final_amount,
        application_fee=fees.application_fee,
        full_course_amount=fees.grand_total,
        remaining_amount=fees.remaining_amount,
        payment_option=fees.payment_option,
        discount_amount=fees.discount_amount or None,
        coupon_code=pending.coupon_code,
        timestamp=now,
    )
    application_data = await manager.update_application_data(
        {
            "payment_complete": True,
            "is_complete": True,
            "submitted_at": now,
            "payment_details": details,
        }
    )
    await manager.set_current_step(ApplicationStep.SUCCESS)

    await manager.persistence.delete_session_value(PENDING_PAYMENT_KEY)
    await manager.persistence.delete_session_value(PAYMENT_PROCESSING_KEY)

    personal = application_data.personal_info
    if personal.email:
        await send_application_confirmation(
            to_email=personal.email,
            applicant_name=personal.full_name or personal.email,
            application_id=application_data.application_id or "",
            program_name=application_data.program_selection.specialization,
            amount=fees.final_amount,
            payment_id=payment_id,
        )

    logger.info(f"Application {application_data.application_id} completed with payment {payment_id}")
    return application_data


async def cancel_payment(manager: ApplicationStateManager, reason: str | None = None) -> str:
    """Clear the processing flag after the widget is dismissed or fails."""
    await manager.persistence.delete_session_value(PAYMENT_PROCESSING_KEY)
    await manager.persistence.delete_session_value(PENDING_PAYMENT_KEY)
    if reason:
        logger.info(f"Payment cancelled for session {manager.persistence.session_id}: {reason}")
        return reason
    return "Payment cancelled"


# Existing-student portal


async def open_portal(
    persistence: ApplicationPersistence,
    backend: BackendClient,
) -> PaymentPortalData:
    """
    The signed-in student's portal view.

    The session summary is used as stored, so payments applied in this
    session keep deciding the amounts. The backend profile is fetched only
    when there is no summary yet, for the user id this session signed in as.

    Raises:
        PortalSessionError: neither a summary nor a user id is stored
    """
    student = await find_student(persistence)
    if student is not None:
        return PaymentPortalData.from_student(student)

    user_id = await persistence.get_user_id()
    if not user_id:
        raise PortalSessionError("Please log in to access the payment portal")

    response = await backend.get_profile(user_id)
    if response.data is None:
        raise BackendError(response.message or "Failed to fetch payment portal data")
    portal = PaymentPortalData.from_profile(response.data)
    await save_student(persistence, portal.to_student_data())
    return portal


async def start_portal_checkout(
    persistence: ApplicationPersistence,
    backend: BackendClient,
    gateway: RazorpayGateway,
    payment_type: PortalPaymentType,
    custom_amount: float | None = None,
) -> dict[str, Any]:
    portal = await open_portal(persistence, backend)
    amount = portal.payment_amount(payment_type, custom_amount)

    order = await create_order(gateway, amount, notes={"studentId": portal.student_id})
    pending = PendingPortalPayment(order_id=order.order_id, amount=amount, payment_type=payment_type)
    await persistence.save_session_value(PENDING_PORTAL_PAYMENT_KEY, pending.to_wire())

    return {
        "key": gateway.key_id,
        "amount": round(order.amount * 100),
        "currency": order.currency,
        "name": PORTAL_CHECKOUT_NAME,
        "description": f"{payment_type.label} Payment - {portal.selected_program}",
        "order_id": order.order_id,
        "prefill": {
            "name": portal.full_name,
            "email": portal.email,
            "contact": portal.phone,
        },
        "theme": {"color": "#3B82F6"},
    }


async def confirm_portal_payment(
    persistence: ApplicationPersistence,
    backend: BackendClient,
    gateway: RazorpayGateway,
    order_id: str | None,
    payment_id: str | None,
    signature: str | None,
) -> PortalPaymentReceipt:
    """
    Verify an existing-student payment, apply it to the session summary,
    record it with the backend and email a receipt.
    """
    verify_payment(gateway, order_id, payment_id, signature)

    raw = await persistence.get_session_value(PENDING_PORTAL_PAYMENT_KEY)
    if not raw:
        raise PaymentVerificationError(VERIFICATION_FAILED_MESSAGE)
    pending = PendingPortalPayment.model_validate(raw)
    if pending.order_id != order_id:
        logger.warning(f"Portal confirmation for order {order_id} does not match pending order")
        raise PaymentVerificationError(VERIFICATION_FAILED_MESSAGE)

    student = (await load_student(persistence)).apply_payment(pending.amount)
    await save_student(persistence, student)
    await persistence.delete_session_value(PENDING_PORTAL_PAYMENT_KEY)

    recorded = True
    try:
        await backend.record_payment(
            student.id,
            PaymentRecord(
                amount=pending.amount,
                transaction_id=payment_id,
                order_id=order_id,
                description=f"{pending.payment_type.label} payment",
            ),
        )
    except BackendError as e:
        recorded = False
        logger.error(f"Failed to record payment {payment_id} for student {student.id}: {e.message}")

    receipt = PortalPaymentReceipt(
        order_id=order_id,
        payment_id=payment_id,
        amount=pending.amount,
        payment_type=pending.payment_type,
        paid_amount=student.paid_amount,
        remaining_amount=student.remaining_amount,
        recorded=recorded,
        timestamp=_now_iso(),
    )
    await persistence.save_session_value(LAST_PORTAL_PAYMENT_KEY, receipt.to_wire())

    if student.email:
        await send_payment_receipt(
            to_email=student.email,
            student_name=student.full_name or student.email,
            amount=pending.amount,
            remaining_amount=student.remaining_amount,
            payment_id=payment_id,
            order_id=order_id,
        )

    logger.info(f"Portal payment {payment_id} applied for student {student.id}")
    return receipt


async def portal_login(
    persistence: ApplicationPersistence,
    backend: BackendClient,
    credentials: LoginRequest,
) -> PaymentPortalData:
    """
    Sign an existing student in to the payment portal.

    The portal summary comes from the student's backend profile, never
    from the login response alone.
    """
    response = await backend.login(credentials)
    if not response.success or response.data is None:
        raise BackendError(
            response.message or "Login failed. Please check your credentials.",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    profile = await backend.get_profile(response.data.id)
    user = profile.data or response.data
    portal = PaymentPortalData.from_profile(user)
    await save_student(persistence, portal.to_student_data())
    await persistence.save_user_id(user.id)

    logger.info(f"Existing student {user.id} signed in to the payment portal")
    return portal


async def portal_logout(persistence: ApplicationPersistence) -> None:
    await clear_student(persistence)
    await persistence.clear_user_id()


async def last_portal_receipt(persistence: ApplicationPersistence) -> PortalPaymentReceipt | None:
    raw = await persistence.get_session_value(LAST_PORTAL_PAYMENT_KEY)
    if not raw:
        return None
    try:
        return PortalPaymentReceipt.model_validate(raw)
    except ValueError as e:
        logger.warning(f"Ignoring unreadable portal receipt: {e}")
        return None
