"""
Razorpay Gateway

Order creation through the Razorpay SDK and checkout signature
verification. The SDK is synchronous, so calls run in a worker thread.
"""

import asyncio
import hashlib
import hmac
import logging
import time
from typing import Any

from fastapi import status
from pydantic import BaseModel

from admission_portal.core.config import settings
from admission_portal.core.money import to_minor_units

from .exceptions import GatewayError, InvalidAmountError, PaymentConfigurationError

logger = logging.getLogger(__name__)


class GatewayOrder(BaseModel):
    order_id: str
    amount_minor: int
    currency: str
    receipt: str


def _receipt(now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"receipt_{now_ms}"


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """
    Check a checkout signature: hex HMAC-SHA256 of `order_id|payment_id`.
    """
    message = f"{order_id}|{payment_id}"
    expected = hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


class RazorpayGateway:
    def __init__(
        self,
        key_id: str | None,
        key_secret: str | None,
        currency: str = "INR",
        client: Any = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.currency = currency
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.configured:
                logger.error("Razorpay credentials are not configured")
                raise PaymentConfigurationError("Payment gateway configuration error")
            import razorpay

            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._client

    async def create_order(
        self,
        amount: float,
        notes: dict[str, str] | None = None,
    ) -> GatewayOrder:
        """
        Create an order for `amount` rupees.

        Raises:
            InvalidAmountError: amount is not a positive number
            PaymentConfigurationError: credentials are missing
            GatewayError: Razorpay rejected or failed the request
        """
        if isinstance(amount, bool) or not isinstance(amount, int | float) or amount <= 0:
            raise InvalidAmountError("Invalid amount provided")

        client = self._get_client()
        order_data: dict[str, Any] = {
            "amount": to_minor_units(amount),
            "currency": self.currency,
            "receipt": _receipt(),
            "payment_capture": 1,
        }
        if notes:
            order_data["notes"] = notes

        try:
            order = await asyncio.to_thread(client.order.create, data=order_data)
        except Exception as e:
            status_code = _status_for(e)
            logger.error(f"Razorpay order creation failed ({status_code}): {e}")
            raise GatewayError(
                "Failed to create order with payment provider", status_code=status_code
            ) from e

        logger.info(f"Created Razorpay order {order['id']} for {order_data['amount']} paise")
        return GatewayOrder(
            order_id=order["id"],
            amount_minor=int(order.get("amount", order_data["amount"])),
            currency=order.get("currency", self.currency),
            receipt=order.get("receipt", order_data["receipt"]),
        )

    def verify(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not self.key_secret:
            logger.error("Razorpay key secret is not configured")
            raise PaymentConfigurationError("Payment verification configuration error")
        return verify_signature(order_id, payment_id, signature, self.key_secret)


def _status_for(error: Exception) -> int:
    """
    HTTP status for a failed SDK call.

    The SDK raises by Razorpay's error code and drops the response status:
    - BadRequestError (invalid request, bad credentials): 400
    - GatewayError / ServerError (Razorpay or bank side failure): 502
    - requests.Timeout: 504
    - anything else, such as connection failures: 502
    """
    import razorpay
    import requests

    if isinstance(error, razorpay.errors.BadRequestError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, requests.Timeout):
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_502_BAD_GATEWAY


def get_gateway() -> RazorpayGateway:
    """FastAPI dependency returning a gateway built from settings."""
    return RazorpayGateway(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
        currency=settings.currency,
    )
