"""
Admissions Backend Schemas

Models for the remote admissions backend's payloads. Unknown fields are
ignored so backend additions do not break parsing.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel


class BackendModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# Authentication


class SignupRequest(BackendModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=5, max_length=20)
    password: str = Field(..., min_length=6, max_length=128)
    confirm_password: str = Field(..., min_length=6, max_length=128)

    @model_validator(mode="after")
    def passwords_match(self) -> "SignupRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BackendModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class PaymentTransaction(BackendModel):
    transaction_id: str = ""
    amount: float = 0
    payment_method: str = ""
    payment_gateway: str = ""
    status: str = ""
    description: str = ""
    remarks: str = ""
    created_at: str | None = None


class AppliedCoupon(BackendModel):
    coupon_code: str = ""
    discount_amount: float = 0
    discount_type: str = ""
    original_value: float = 0
    applied_at: str | None = None


class PaymentInformation(BackendModel):
    id: str | None = Field(default=None, alias="_id")
    course_id: str | None = None
    program_id: str | None = None
    total_fee: float = 0
    processing_fee: float = 0
    registration_fee: float = 0
    course_fee: float = 0
    payment_status: str = "pending"
    total_amount_paid: float = 0
    total_amount_due: float = 0
    total_discount: float = 0
    next_payment_date: str | None = None
    applied_coupons: list[AppliedCoupon] = Field(default_factory=list)
    payment_transactions: list[PaymentTransaction] = Field(default_factory=list)
    last_payment_date: str | None = None


class AdmissionForm(BackendModel):
    """The backend's flat admission form document. Extra keys are kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: str | None = Field(default=None, alias="_id")
    status: str | None = None
    application_id: str | None = None
    application_status: str | None = None
    payment_complete: bool = False
    submitted_at: str | None = None
    created_at: str | None = None

    def field(self, name: str) -> Any:
        """Read a form field by its wire name, whether declared or extra."""
        extra = self.model_extra or {}
        if name in extra:
            return extra[name]
        for field_name, info in type(self).model_fields.items():
            if info.alias == name or field_name == name:
                return getattr(self, field_name)
        return None


class BackendUser(BackendModel):
    id: str = Field(..., alias="_id")
    name: str = ""
    email: str = ""
    phone: str = ""
    application_id: str | None = None
    admission_form_id: AdmissionForm | None = None
    payment_information: list[PaymentInformation] = Field(default_factory=list)
    is_active: bool = False
    is_verified: bool = False
    session_token: str | None = None

    @model_validator(mode="before")
    @classmethod
    def admission_form_may_be_an_id(cls, data: Any) -> Any:
        # Unpopulated references arrive as a bare id string
        if isinstance(data, dict) and isinstance(data.get("admissionFormId"), str):
            data = {**data, "admissionFormId": {"_id": data["admissionFormId"]}}
        return data


class AuthResponse(BackendModel):
    success: bool = False
    message: str = ""
    data: BackendUser | None = None


# Course catalog


class CouponCode(BackendModel):
    code: str
    discount_type: Literal["percentage", "fixed"]
    discount_value: float
    minimum_amount: float = 0
    maximum_discount: float | None = None
    valid_from: datetime
    valid_until: datetime
    usage_limit: int = 0
    used_count: int = 0
    is_active: bool = True
    description: str = ""


class EmiOption(BackendModel):
    months: int
    monthly_amount: float
    total_amount: float
    processing_fee: float = 0
    interest_rate: float = 0
    is_active: bool = True


class FeeStructure(BackendModel):
    total_fee: float
    registration_fee: float
    processing_fee: float = 0
    emi_options: list[EmiOption] = Field(default_factory=list)
    coupon_codes: list[CouponCode] = Field(default_factory=list)
    payment_terms: str = ""
    refund_policy: str = ""


class Program(BackendModel):
    id: str = Field(..., alias="_id")
    slug: str
    title: str = ""
    parent_course_slug: str = ""
    parent_course_title: str = ""
    duration: str = ""
    description: str = ""
    short_description: str = ""
    fee_structure: FeeStructure | None = None
    is_active: bool = True


class Course(BackendModel):
    id: str = Field(..., alias="_id")
    slug: str
    title: str = ""
    description: str = ""
    is_active: bool = True
    programs: list[Program] = Field(default_factory=list)


class CoursesResponse(BackendModel):
    success: bool = False
    data: list[Course] = Field(default_factory=list)


# Admission submission and payment records


class AdmissionSubmission(BackendModel):
    user_id: str
    course_id: str
    program_id: str
    payment_type: Literal["full", "partial", "other"]
    coupon_code: str | None = None
    initial_payment: float
    first_name: str = ""
    last_name: str = ""
    date_of_birth: str = ""
    gender: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""
    phone: str = ""
    email: str = ""
    education: str = ""
    work_experience: str = "Not specified"
    transaction_id: str | None = None
    order_id: str | None = None


class PaymentRecord(BackendModel):
    amount: float
    transaction_id: str
    order_id: str
    payment_method: str = "online"
    payment_gateway: str = "razorpay"
    status: str = "success"
    description: str = ""
    remarks: str = "Payment completed successfully"
