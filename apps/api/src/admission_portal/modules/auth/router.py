"""
Authentication router.

Applicants sign up and log in against the remote admissions backend. A
successful response hydrates the wizard session from the user's profile.

Endpoints:
- POST /auth/signup - Create an applicant account
- POST /auth/login - Log in and resume the application
- POST /auth/logout - Clear the session and return to the login step
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from admission_portal.core.errors import PortalServiceError, internal_error, to_http_exception
from admission_portal.modules.applications.dependencies import get_state_manager
from admission_portal.modules.applications.router import session_view
from admission_portal.modules.applications.schemas import SessionView
from admission_portal.modules.applications.service import apply_login_response
from admission_portal.modules.applications.state import ApplicationStateManager
from admission_portal.modules.auth.schemas import AuthSessionResponse
from admission_portal.modules.autosave.registry import AutoSaveRegistry, get_autosave_registry
from admission_portal.modules.backend.client import BackendClient, get_backend_client
from admission_portal.modules.backend.schemas import LoginRequest, SignupRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _auth_failed(message: str, status_code: int) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"error": "AUTHENTICATION_FAILED", "message": message},
    )


@router.post("/signup", response_model=AuthSessionResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    payload: SignupRequest,
    manager: ApplicationStateManager = Depends(get_state_manager),
    backend: BackendClient = Depends(get_backend_client),
) -> AuthSessionResponse:
    """
    Create an applicant account and start the wizard.

    Raises:
        HTTPException 400: The backend refused the signup (e.g. email taken)
        HTTPException 422: Invalid payload or passwords do not match
    """
    try:
        response = await backend.signup(payload)
        if not response.success or response.data is None:
            logger.warning(f"Signup refused for {payload.email}: {response.message}")
            raise _auth_failed(response.message or "Signup failed", status.HTTP_400_BAD_REQUEST)

        current_step = await apply_login_response(manager, response, payload.email)
    except HTTPException:
        raise
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, "signing up") from e

    logger.info(f"Applicant signed up: {payload.email}")
    return AuthSessionResponse(
        message=response.message or "Signup successful",
        user_id=response.data.id,
        user_type=manager.user_type,
        current_step=current_step,
        application_data=manager.application_data,
    )


@router.post("/login", response_model=AuthSessionResponse)
async def login(
    credentials: LoginRequest,
    manager: ApplicationStateManager = Depends(get_state_manager),
    backend: BackendClient = Depends(get_backend_client),
) -> AuthSessionResponse:
    """
    Log in and resume where the applicant left off.

    Completed applications land on success, paid ones on review and
    everything else on the first step.

    Raises:
        HTTPException 401: Invalid credentials
    """
    try:
        response = await backend.login(credentials)
        if not response.success or response.data is None:
            logger.warning(f"Login failed for {credentials.email}")
            raise _auth_failed(
                response.message or "Login failed. Please check your credentials.",
                status.HTTP_401_UNAUTHORIZED,
            )

        current_step = await apply_login_response(manager, response, credentials.email)
    except HTTPException:
        raise
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, "logging in") from e

    logger.info(f"Applicant logged in: {credentials.email} (step: {current_step.value})")
    return AuthSessionResponse(
        message=response.message or "Login successful",
        user_id=response.data.id,
        user_type=manager.user_type,
        current_step=current_step,
        application_data=manager.application_data,
    )


@router.post("/logout", response_model=SessionView)
async def logout(
    manager: ApplicationStateManager = Depends(get_state_manager),
    registry: AutoSaveRegistry = Depends(get_autosave_registry),
) -> SessionView:
    await registry.discard_session(manager.persistence.session_id)
    await manager.logout()
    return await session_view(manager)
