"""
Payment Errors

Messages are shown to applicants as-is, so none of them carry gateway
internals or configuration details.
"""

from fastapi import status

from admission_portal.core.errors import PortalServiceError


class PaymentError(PortalServiceError):
    error_code = "PAYMENT_ERROR"


class InvalidAmountError(PaymentError):
    error_code = "INVALID_AMOUNT"
    status_code = status.HTTP_400_BAD_REQUEST


class PaymentConfigurationError(PaymentError):
    error_code = "PAYMENT_CONFIGURATION_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class GatewayError(PaymentError):
    """The payment provider rejected or failed an order request."""

    error_code = "GATEWAY_ERROR"
    status_code = status.HTTP_502_BAD_GATEWAY


class PaymentVerificationError(PaymentError):
    error_code = "PAYMENT_VERIFICATION_FAILED"
    status_code = status.HTTP_400_BAD_REQUEST


class MissingPaymentFieldsError(PaymentVerificationError):
    error_code = "MISSING_PAYMENT_FIELDS"


class CouponError(PaymentError):
    error_code = "INVALID_COUPON"
    status_code = status.HTTP_400_BAD_REQUEST


class PortalSessionError(PaymentError):
    """No existing-student session is active."""

    error_code = "PORTAL_SESSION_REQUIRED"
    status_code = status.HTTP_401_UNAUTHORIZED
