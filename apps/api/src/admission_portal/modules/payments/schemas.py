"""
Payment request and response schemas.
"""

from typing import Any

from admission_portal.modules.applications.schemas import (
    ApplicationData,
    ApplicationStep,
    CamelModel,
    PaymentOption,
)

from .portal import ExistingStudentData, PaymentPortalData, PortalPaymentType


class OrderRequest(CamelModel):
    # Validated by the service so a bad amount gets the flat 400 body
    amount: Any = None


class VerifyRequest(CamelModel):
    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None


class QuoteRequest(CamelModel):
    payment_option: PaymentOption = PaymentOption.APPLICATION
    custom_amount: str | float | None = None
    coupon_code: str | None = None


class CheckoutRequest(QuoteRequest):
    pass


class CancelPaymentRequest(CamelModel):
    reason: str | None = None


class CancelPaymentResponse(CamelModel):
    message: str


class CompletePaymentResponse(CamelModel):
    message: str = "Payment successful"
    application_data: ApplicationData
    current_step: ApplicationStep


class PortalCheckoutRequest(CamelModel):
    payment_type: PortalPaymentType = PortalPaymentType.FULL
    custom_amount: float | None = None


class PortalViewResponse(CamelModel):
    portal: PaymentPortalData
    student: ExistingStudentData
