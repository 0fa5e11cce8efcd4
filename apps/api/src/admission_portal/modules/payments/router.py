"""
Payments Router

Endpoints:
- POST /api/order - Create a Razorpay order ({orderId, amount, currency})
- POST /api/verify - Verify a checkout signature ({isOk, message, ...})
- POST /session/payment/quote - Price a payment option and coupon
- POST /session/payment/checkout - Create the application's order and widget options
- POST /session/payment/complete - Verify and complete the application
- POST /session/payment/cancel - Clear a dismissed or failed checkout
- POST /payment-portal/login - Existing-student sign in
- POST /payment-portal/logout - Leave the portal
- GET /payment-portal - Portal view (fee account summary)
- POST /payment-portal/checkout - Create an order for a full or partial payment
- POST /payment-portal/confirm - Verify, apply and record the payment
- GET /payment-portal/receipt.pdf - Payment receipt

The two /api endpoints keep flat response bodies ({error} and
{isOk, message}) for the checkout widget. Everything else uses the
{"error", "message"} detail shape.

Security:
- Rate limiting on order creation and verification
- Signatures verified server-side before any state change
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from admission_portal.core.config import settings
from admission_portal.core.errors import PortalServiceError, internal_error, to_http_exception
from admission_portal.core.rate_limit import rate_limit
from admission_portal.modules.applications.dependencies import (
    get_catalog,
    get_persistence,
    get_state_manager,
)
from admission_portal.modules.applications.state import ApplicationStateManager
from admission_portal.modules.backend.catalog import CourseCatalog
from admission_portal.modules.backend.client import BackendClient, get_backend_client
from admission_portal.modules.backend.schemas import LoginRequest
from admission_portal.modules.documents.pdf import attachment_disposition, render_payment_receipt_pdf
from admission_portal.modules.payments import service
from admission_portal.modules.payments.exceptions import (
    GatewayError,
    InvalidAmountError,
    MissingPaymentFieldsError,
    PaymentConfigurationError,
    PaymentVerificationError,
)
from admission_portal.modules.payments.fees import FeeBreakdown
from admission_portal.modules.payments.gateway import RazorpayGateway, get_gateway
from admission_portal.modules.payments.portal import PortalPaymentReceipt, load_student
from admission_portal.modules.payments.schemas import (
    CancelPaymentRequest,
    CancelPaymentResponse,
    CheckoutRequest,
    CompletePaymentResponse,
    OrderRequest,
    PortalCheckoutRequest,
    PortalViewResponse,
    QuoteRequest,
    VerifyRequest,
)
from admission_portal.modules.persistence.session import ApplicationPersistence

logger = logging.getLogger(__name__)

# Mounted at the application root
gateway_router = APIRouter()

# Mounted under /api/v1
router = APIRouter()


# Razorpay order / verify


@gateway_router.post(
    "/api/order",
    summary="Create Razorpay Order",
    description="Create a payment order for an amount in rupees.",
)
@rate_limit(limit=settings.payment_rate_limit, window_seconds=settings.payment_rate_window_seconds)
async def create_order(
    request: Request,
    payload: OrderRequest,
    gateway: RazorpayGateway = Depends(get_gateway),
) -> JSONResponse:
    try:
        order = await service.create_order(gateway, payload.amount)
        return JSONResponse(order.to_wire())
    except InvalidAmountError as e:
        return JSONResponse({"error": e.message}, status_code=status.HTTP_400_BAD_REQUEST)
    except PaymentConfigurationError as e:
        return JSONResponse({"error": e.message}, status_code=e.status_code)
    except GatewayError as e:
        return JSONResponse({"error": e.message}, status_code=e.status_code)
    except Exception as e:
        logger.exception(f"Error creating order: {e}")
        return JSONResponse(
            {"error": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


@gateway_router.post(
    "/api/verify",
    summary="Verify Razorpay Payment",
    description="Verify the HMAC-SHA256 signature returned by the checkout widget.",
)
@rate_limit(limit=settings.payment_rate_limit, window_seconds=settings.payment_rate_window_seconds)
async def verify_payment(
    request: Request,
    payload: VerifyRequest,
    gateway: RazorpayGateway = Depends(get_gateway),
) -> JSONResponse:
    try:
        result = service.verify_payment(
            gateway,
            payload.razorpay_order_id,
            payload.razorpay_payment_id,
            payload.razorpay_signature,
        )
        return JSONResponse(result.to_wire(exclude_none=True))
    except (MissingPaymentFieldsError, PaymentVerificationError, PaymentConfigurationError) as e:
        return JSONResponse({"isOk": False, "message": e.message}, status_code=e.status_code)
    except Exception as e:
        logger.exception(f"Error verifying payment: {e}")
        return JSONResponse(
            {"isOk": False, "message": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# New-applicant checkout


@router.post("/session/payment/quote", response_model=FeeBreakdown)
async def quote_payment(
    payload: QuoteRequest,
    manager: ApplicationStateManager = Depends(get_state_manager),
    catalog: CourseCatalog = Depends(get_catalog),
) -> FeeBreakdown:
    """Price a payment option for the selected program, with an optional coupon."""
    try:
        fees, _, _ = await service.quote_fees(
            manager,
            catalog,
            payload.payment_option,
            custom_amount=payload.custom_amount,
            coupon_code=payload.coupon_code,
        )
        return fees
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, "quoting payment") from e


@router.post("/session/payment/checkout", response_model=service.CheckoutResponse)
@rate_limit(limit=settings.payment_rate_limit, window_seconds=settings.payment_rate_window_seconds)
async def start_checkout(
    request: Request,
    payload: CheckoutRequest,
    manager: ApplicationStateManager = Depends(get_state_manager),
    catalog: CourseCatalog = Depends(get_catalog),
    gateway: RazorpayGateway = Depends(get_gateway),
) -> service.CheckoutResponse:
    """Create the order for the chosen option and return the checkout widget options."""
    try:
        return await service.start_checkout(
            manager,
            catalog,
            gateway,
            payload.payment_option,
            custom_amount=payload.custom_amount,
            coupon_code=payload.coupon_code,
        )
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, "starting checkout") from e


@router.post("/session/payment/complete", response_model=CompletePaymentResponse)
@rate_limit(limit=settings.payment_rate_limit, window_seconds=settings.payment_rate_window_seconds)
async def complete_payment(
    request: Request,
    payload: VerifyRequest,
    manager: ApplicationStateManager = Depends(get_state_manager),
    backend: BackendClient = Depends(get_backend_client),
    gateway: RazorpayGateway = Depends(get_gateway),
) -> CompletePaymentResponse:
    """Verify the checkout result and complete the application."""
    try:
        application_data = await service.complete_payment(
            manager,
            backend,
            gateway,
            payload.razorpay_order_id,
            payload.razorpay_payment_id,
            payload.razorpay_signature,
        )
        return CompletePaymentResponse(
            application_data=application_data,
            current_step=manager.current_step,
        )
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, "completing payment") from e


@router.post("/session/payment/cancel", response_model=CancelPaymentResponse)
async def cancel_payment(
    payload: CancelPaymentRequest,
    manager: ApplicationStateManager = Depends(get_state_manager),
) -> CancelPaymentResponse:
    message = await service.cancel_payment(manager, payload.reason)
    return CancelPaymentResponse(message=message)


# Existing-student portal


@router.post("/payment-portal/login", response_model=PortalViewResponse)
async def portal_login(
    credentials: LoginRequest,
    persistence: ApplicationPersistence = Depends(get_persistence),
    backend: BackendClient = Depends(get_backend_client),
) -> PortalViewResponse:
    try:
        portal = await service.portal_login(persistence, backend, credentials)
        return PortalViewResponse(portal=portal, student=portal.to_student_data())
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, "signing in to the payment portal") from e


@router.post("/payment-portal/logout", status_code=status.HTTP_204_NO_CONTENT)
async def portal_logout(
    persistence: ApplicationPersistence = Depends(get_persistence),
) -> Response:
    await service.portal_logout(persistence)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/payment-portal", response_model=PortalViewResponse)
async def portal_view(
    persistence: ApplicationPersistence = Depends(get_persistence),
    backend: BackendClient = Depends(get_backend_client),
) -> PortalViewResponse:
    try:
        portal = await service.open_portal(persistence, backend)
        return PortalViewResponse(portal=portal, student=await load_student(persistence))
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, "loading the payment portal") from e


@router.post("/payment-portal/checkout")
@rate_limit(limit=settings.payment_rate_limit, window_seconds=settings.payment_rate_window_seconds)
async def portal_checkout(
    request: Request,
    payload: PortalCheckoutRequest,
    persistence: ApplicationPersistence = Depends(get_persistence),
    backend: BackendClient = Depends(get_backend_client),
    gateway: RazorpayGateway = Depends(get_gateway),
) -> dict:
    try:
        options = await service.start_portal_checkout(
            persistence,
            backend,
            gateway,
            payload.payment_type,
            payload.custom_amount,
        )
        return {"options": options}
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, "starting portal checkout") from e


@router.post("/payment-portal/confirm", response_model=PortalPaymentReceipt)
@rate_limit(limit=settings.payment_rate_limit, window_seconds=settings.payment_rate_window_seconds)
async def portal_confirm(
    request: Request,
    payload: VerifyRequest,
    persistence: ApplicationPersistence = Depends(get_persistence),
    backend: BackendClient = Depends(get_backend_client),
    gateway: RazorpayGateway = Depends(get_gateway),
) -> PortalPaymentReceipt:
    try:
        return await service.confirm_portal_payment(
            persistence,
            backend,
            gateway,
            payload.razorpay_order_id,
            payload.razorpay_payment_id,
            payload.razorpay_signature,
        )
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, "confirming portal payment") from e


@router.get("/payment-portal/receipt.pdf")
async def portal_receipt(
    persistence: ApplicationPersistence = Depends(get_persistence),
    backend: BackendClient = Depends(get_backend_client),
) -> Response:
    try:
        portal = await service.open_portal(persistence, backend)
        last_payment = await service.last_portal_receipt(persistence)
    except PortalServiceError as e:
        raise to_http_exception(e) from e

    try:
        pdf = render_payment_receipt_pdf(portal, last_payment)
    except Exception as e:
        raise internal_error(e, "rendering payment receipt") from e

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": attachment_disposition(f"receipt-{portal.student_id}.pdf")},
    )


