"""
Existing-Student Payment Portal

Students who were admitted earlier pay their outstanding balance here.
Their summary lives in the session's primary store only (tab-scoped data,
never mirrored to the database) under `existingStudentData`.
"""

import enum
import logging
from datetime import UTC, datetime

from admission_portal.modules.applications.schemas import CamelModel
from admission_portal.modules.backend.schemas import (
    AppliedCoupon,
    BackendUser,
    PaymentTransaction,
)
from admission_portal.modules.persistence.session import ApplicationPersistence

from .exceptions import InvalidAmountError, PortalSessionError

logger = logging.getLogger(__name__)

EXISTING_STUDENT_KEY = "existingStudentData"
PENDING_PORTAL_PAYMENT_KEY = "pendingPortalPayment"
LAST_PORTAL_PAYMENT_KEY = "lastPortalPayment"


class PortalPaymentType(str, enum.Enum):
    FULL = "full"
    PARTIAL = "partial"

    @property
    def label(self) -> str:
        return "Full" if self is PortalPaymentType.FULL else "Partial"


def payment_amount(
    payment_type: PortalPaymentType,
    remaining_amount: float,
    custom_amount: float | None = None,
) -> float:
    """
    What an existing student pays now.

    Full pays the whole remaining balance; partial pays the custom amount
    capped at the remaining balance.

    Raises:
        InvalidAmountError: the resulting amount is not positive
    """
    remaining = remaining_amount or 0
    if payment_type == PortalPaymentType.FULL:
        amount = remaining
    else:
        amount = min(custom_amount or 0, remaining)
    if amount <= 0:
        raise InvalidAmountError("Invalid payment amount")
    return amount


class ExistingStudentData(CamelModel):
    id: str
    full_name: str = ""
    email: str = ""
    phone: str = ""
    program_category: str = ""
    selected_program: str = ""
    specialization: str = ""
    campus: str = ""
    admission_date: str = ""
    has_initial_payment: bool = False
    application_fee: float = 0
    paid_amount: float = 0
    remaining_amount: float = 0
    academic_year: str = ""

    def payment_amount(
        self, payment_type: PortalPaymentType, custom_amount: float | None = None
    ) -> float:
        return payment_amount(payment_type, self.remaining_amount, custom_amount)

    def apply_payment(self, amount: float) -> "ExistingStudentData":
        """Return a copy with `amount` moved from remaining to paid."""
        return self.model_copy(
            update={
                "paid_amount": self.paid_amount + amount,
                "remaining_amount": self.remaining_amount - amount,
                "has_initial_payment": True,
            }
        )


class PaymentPortalData(CamelModel):
    """Portal view of a student's fee account."""

    student_id: str
    full_name: str = ""
    email: str = ""
    phone: str = ""
    program_category: str = ""
    selected_program: str = ""
    specialization: str = ""
    campus: str = ""
    admission_date: str = ""
    has_initial_payment: bool = False
    application_fee: float = 0
    paid_amount: float = 0
    remaining_amount: float = 0
    academic_year: str = ""
    payment_status: str = "pending"
    total_fee: float = 0
    processing_fee: float = 0
    registration_fee: float = 0
    course_fee: float = 0
    total_amount_paid: float = 0
    total_amount_due: float = 0
    total_discount: float = 0
    next_payment_date: str | None = None
    applied_coupons: list[AppliedCoupon] = []
    payment_transactions: list[PaymentTransaction] = []
    last_payment_date: str = ""
    application_status: str = "pending"
    is_active: bool = False

    @classmethod
    def from_profile(cls, user: BackendUser, now: datetime | None = None) -> "PaymentPortalData":
        """Build the portal view from a backend profile, using its latest payment record."""
        form = user.admission_form_id
        payment = user.payment_information[0] if user.payment_information else None
        now = now or datetime.now(UTC)

        def form_text(name: str) -> str:
            value = form.field(name) if form else None
            return str(value) if value else ""

        full_name = f"{form_text('firstName')} {form_text('lastName')}".strip()
        paid = payment.total_amount_paid if payment else 0
        due = payment.total_amount_due if payment else 0

        return cls(
            student_id=user.id,
            full_name=full_name,
            email=form_text("email") or user.email,
            phone=form_text("phone") or user.phone,
            program_category=form_text("programCategory"),
            selected_program=form_text("programName"),
            specialization=form_text("specialization"),
            campus=form_text("campus"),
            admission_date=(form.created_at if form else None) or "",
            has_initial_payment=paid > 0,
            application_fee=payment.registration_fee if payment else 0,
            paid_amount=paid,
            remaining_amount=due,
            academic_year=str(now.year),
            payment_status=payment.payment_status if payment else "pending",
            total_fee=payment.total_fee if payment else 0,
            processing_fee=payment.processing_fee if payment else 0,
            registration_fee=payment.registration_fee if payment else 0,
            course_fee=payment.course_fee if payment else 0,
            total_amount_paid=paid,
            total_amount_due=due,
            total_discount=payment.total_discount if payment else 0,
            next_payment_date=payment.next_payment_date if payment else None,
            applied_coupons=payment.applied_coupons if payment else [],
            payment_transactions=payment.payment_transactions if payment else [],
            last_payment_date=(payment.last_payment_date if payment else None) or "",
            application_status=(form.application_status if form else None) or "pending",
            is_active=user.is_active,
        )

    @classmethod
    def from_student(cls, student: ExistingStudentData) -> "PaymentPortalData":
        """Portal view of the session summary; its amounts are used as stored."""
        return cls(
            student_id=student.id,
            full_name=student.full_name,
            email=student.email,
            phone=student.phone,
            program_category=student.program_category,
            selected_program=student.selected_program,
            specialization=student.specialization,
            campus=student.campus,
            admission_date=student.admission_date,
            has_initial_payment=student.has_initial_payment,
            application_fee=student.application_fee,
            paid_amount=student.paid_amount,
            remaining_amount=student.remaining_amount,
            academic_year=student.academic_year,
            total_fee=student.application_fee,
            registration_fee=student.application_fee,
            total_amount_paid=student.paid_amount,
            total_amount_due=student.remaining_amount,
            application_status="approved",
            is_active=True,
        )

    def to_student_data(self) -> ExistingStudentData:
        return ExistingStudentData(
            id=self.student_id,
            full_name=self.full_name,
            email=self.email,
            phone=self.phone,
            program_category=self.program_category,
            selected_program=self.selected_program,
            specialization=self.specialization,
            campus=self.campus,
            admission_date=self.admission_date,
            has_initial_payment=self.has_initial_payment,
            application_fee=self.application_fee,
            paid_amount=self.paid_amount,
            remaining_amount=self.remaining_amount,
            academic_year=self.academic_year,
        )

    def payment_amount(
        self, payment_type: PortalPaymentType, custom_amount: float | None = None
    ) -> float:
        return payment_amount(payment_type, self.remaining_amount, custom_amount)

    def apply_payment(self, amount: float) -> "PaymentPortalData":
        return self.model_copy(
            update={
                "paid_amount": self.paid_amount + amount,
                "total_amount_paid": self.total_amount_paid + amount,
                "remaining_amount": self.remaining_amount - amount,
                "total_amount_due": self.total_amount_due - amount,
                "has_initial_payment": True,
            }
        )


class PendingPortalPayment(CamelModel):
    order_id: str
    amount: float
    payment_type: PortalPaymentType


class PortalPaymentReceipt(CamelModel):
    order_id: str
    payment_id: str
    amount: float
    payment_type: PortalPaymentType
    paid_amount: float
    remaining_amount: float
    recorded: bool
    timestamp: str


# Session access


async def find_student(persistence: ApplicationPersistence) -> ExistingStudentData | None:
    """The session summary, or None. Unreadable summaries are discarded."""
    raw = await persistence.get_session_value(EXISTING_STUDENT_KEY)
    if not raw:
        return None
    try:
        return ExistingStudentData.model_validate(raw)
    except ValueError as e:
        logger.warning(f"Discarding unreadable existing-student data: {e}")
        await persistence.delete_session_value(EXISTING_STUDENT_KEY)
        return None


async def load_student(persistence: ApplicationPersistence) -> ExistingStudentData:
    """
    Raises:
        PortalSessionError: no existing student is signed in on this session
    """
    student = await find_student(persistence)
    if student is None:
        raise PortalSessionError("Please log in to access the payment portal")
    return student


async def save_student(persistence: ApplicationPersistence, student: ExistingStudentData) -> None:
    await persistence.save_session_value(EXISTING_STUDENT_KEY, student.to_wire())


async def clear_student(persistence: ApplicationPersistence) -> None:
    for key in (EXISTING_STUDENT_KEY, PENDING_PORTAL_PAYMENT_KEY, LAST_PORTAL_PAYMENT_KEY):
        await persistence.delete_session_value(key)
