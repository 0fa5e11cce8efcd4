"""
Admissions Backend Client

Async httpx client for the remote admissions backend (authentication,
progress sync, admission submission, course catalog and payment records).

Every non-2xx response and every transport failure raises BackendError;
the message comes from the backend's `message` field when it has one.
"""

import logging
from typing import Any

import httpx
from fastapi import status

from admission_portal.core.config import settings
from admission_portal.core.errors import PortalServiceError

from .schemas import (
    AdmissionSubmission,
    AuthResponse,
    CoursesResponse,
    LoginRequest,
    PaymentRecord,
    SignupRequest,
)

logger = logging.getLogger(__name__)


class BackendError(PortalServiceError):
    """The admissions backend rejected a request or could not be reached."""

    error_code = "BACKEND_ERROR"
    status_code = status.HTTP_502_BAD_GATEWAY


class BackendClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        fallback_message: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.error(f"Admissions backend unreachable ({method} {path}): {e}")
            raise BackendError("Unable to reach the admissions service. Please try again.") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.is_error:
            message = body.get("message") or fallback_message
            logger.warning(f"Admissions backend {method} {path} -> {response.status_code}: {message}")
            raise BackendError(message, status_code=response.status_code)

        return body

    async def signup(self, data: SignupRequest) -> AuthResponse:
        body = await self._request(
            "POST",
            "/admission-auth/signup",
            "Signup failed",
            json=data.model_dump(by_alias=True, mode="json"),
        )
        return AuthResponse.model_validate(body)

    async def login(self, data: LoginRequest) -> AuthResponse:
        body = await self._request(
            "POST",
            "/admission-auth/login",
            "Login failed",
            json=data.model_dump(by_alias=True, mode="json"),
        )
        return AuthResponse.model_validate(body)

    async def get_profile(self, user_id: str) -> AuthResponse:
        body = await self._request(
            "GET",
            f"/admission-auth/profile/{user_id}",
            "Failed to fetch payment portal data",
        )
        return AuthResponse.model_validate(body)

    async def save_progress(self, admission_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request(
            "PUT",
            f"/admission/{admission_id}",
            "Failed to save progress",
            json=payload,
        )

    async def submit_admission(self, submission: AdmissionSubmission) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/admission/submit",
            "Failed to submit admission data",
            json=submission.model_dump(by_alias=True, mode="json", exclude_none=True),
        )

    async def record_payment(self, user_id: str, payment: PaymentRecord) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/admission-auth/user/{user_id}/payment",
            "Failed to update payment info",
            json=payment.model_dump(by_alias=True, mode="json"),
        )

    async def get_courses(self) -> CoursesResponse:
        body = await self._request("GET", "/courses", "Failed to fetch courses")
        return CoursesResponse.model_validate(body)


# Shared client instance
backend_client: BackendClient | None = None


def init_backend_client() -> BackendClient:
    """Create the shared client. Call this on application startup."""
    global backend_client
    backend_client = BackendClient(
        base_url=settings.backend_base_url,
        timeout=settings.backend_timeout_seconds,
    )
    return backend_client


async def close_backend_client() -> None:
    global backend_client
    if backend_client is not None:
        await backend_client.aclose()
        backend_client = None


def get_backend_client() -> BackendClient:
    """FastAPI dependency returning the shared client (created on first use)."""
    if backend_client is None:
        return init_backend_client()
    return backend_client
