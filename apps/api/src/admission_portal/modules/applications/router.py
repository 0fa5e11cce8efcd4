"""
Applications Router

Server-side admission wizard for the browser session identified by the
session cookie. A new cookie is issued when the request carries none.

Endpoints:
- GET /session - Current state, sidebar steps and session info
- PATCH /session/application - Shallow merge into application data
- PATCH /session/application/{section} - Field merge into one section
- PUT /session/user-type - Choose the new or existing track
- PUT /session/step - Navigate (completed or current steps only)
- POST /session/reset - Clear the session
- POST /session/new-application - Start another application
- GET /session/progress/{step} - Saved draft for a step
- PUT /session/progress/{step} - Queue a debounced draft save
- POST /session/progress/{step}/flush - Save the pending draft now
- POST /session/steps/{step}/submit - Validate, sync and advance
- POST /session/documents/random - Upload an additional named document
- POST /session/documents/{kind} - Upload a document
- GET /session/application.pdf - Application form PDF

Security:
- The session cookie is httpOnly and validated before use
- Login passwords are never written to storage or echoed back
"""

import logging
import time
from typing import Any

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, Response, UploadFile, status

from admission_portal.core.errors import PortalServiceError, internal_error, to_http_exception
from admission_portal.modules.autosave.registry import AutoSaveRegistry, get_autosave_registry
from admission_portal.modules.backend.catalog import CourseCatalog
from admission_portal.modules.backend.client import BackendClient, get_backend_client
from admission_portal.modules.backend.media import MediaUploader, get_media_uploader
from admission_portal.modules.documents.pdf import attachment_disposition, render_application_pdf

from . import service
from .dependencies import get_catalog, get_state_manager
from .schemas import (
    ApplicationData,
    ApplicationStep,
    DocumentKind,
    DocumentRef,
    FormProgressFlushResponse,
    FormProgressResponse,
    FormProgressUpdateResponse,
    RandomDocument,
    SessionInfo,
    SessionView,
    StepEntry,
    StepRequest,
    SubmitStepRequest,
    SubmitStepResponse,
    UserTypeRequest,
)
from .state import SECTION_MODELS, ApplicationStateManager
from .wizard import describe_steps

logger = logging.getLogger(__name__)

router = APIRouter()


async def session_view(manager: ApplicationStateManager) -> SessionView:
    steps = describe_steps(manager.current_step, manager.user_type)
    return SessionView(
        user_type=manager.user_type,
        current_step=manager.current_step,
        application_data=manager.application_data,
        login_data=manager.login_data,
        steps=[StepEntry.model_validate(entry) for entry in steps],
        session=SessionInfo.model_validate(await manager.session_info()),
    )


def _invalid_payload(error: ValueError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"error": "VALIDATION_ERROR", "message": str(error)},
    )


# Session state


@router.get("", response_model=SessionView)
async def get_session(
    manager: ApplicationStateManager = Depends(get_state_manager),
) -> SessionView:
    """Restore and return the session's wizard state."""
    return await session_view(manager)


@router.patch("/application", response_model=ApplicationData)
async def update_application(
    partial: dict[str, Any] = Body(...),
    manager: ApplicationStateManager = Depends(get_state_manager),
) -> ApplicationData:
    """
    Shallow merge into the application data.

    A section sent here replaces the stored section entirely.
    """
    try:
        return await manager.update_application_data(partial)
    except ValueError as e:
        raise _invalid_payload(e) from e


@router.patch("/application/{section}", response_model=ApplicationData)
async def update_application_section(
    section: str,
    fields: dict[str, Any] = Body(...),
    manager: ApplicationStateManager = Depends(get_state_manager),
) -> ApplicationData:
    """Merge individual fields into one section (personalInfo, academicDetails, programSelection)."""
    section_name = {
        "personalInfo": "personal_info",
        "academicDetails": "academic_details",
        "programSelection": "program_selection",
    }.get(section, section)
    if section_name not in SECTION_MODELS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "SECTION_NOT_FOUND", "message": f"Unknown section: {section}"},
        )
    try:
        return await manager.update_section(section_name, fields)
    except ValueError as e:
        raise _invalid_payload(e) from e


@router.put("/user-type", response_model=SessionView)
async def set_user_type(
    payload: UserTypeRequest,
    manager: ApplicationStateManager = Depends(get_state_manager),
) -> SessionView:
    await manager.set_user_type(payload.user_type)
    return await session_view(manager)


@router.put("/step", response_model=SessionView)
async def set_step(
    payload: StepRequest,
    manager: ApplicationStateManager = Depends(get_state_manager),
) -> SessionView:
    """Sidebar navigation. Upcoming steps are rejected with 409."""
    try:
        await service.go_to_step(manager, payload.step)
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    return await session_view(manager)


@router.post("/reset", response_model=SessionView)
async def reset_session(
    manager: ApplicationStateManager = Depends(get_state_manager),
    registry: AutoSaveRegistry = Depends(get_autosave_registry),
) -> SessionView:
    await registry.discard_session(manager.persistence.session_id)
    await manager.reset_application()
    return await session_view(manager)


@router.post("/new-application", response_model=SessionView)
async def new_application(
    manager: ApplicationStateManager = Depends(get_state_manager),
    registry: AutoSaveRegistry = Depends(get_autosave_registry),
) -> SessionView:
    await registry.discard_session(manager.persistence.session_id)
    await manager.begin_new_application()
    return await session_view(manager)


# Draft auto-save


@router.get("/progress/{step}", response_model=FormProgressResponse)
async def get_progress(
    step: ApplicationStep,
    manager: ApplicationStateManager = Depends(get_state_manager),
) -> FormProgressResponse:
    data = await manager.get_form_progress(step.value)
    return FormProgressResponse(
        step_name=step.value,
        data=data or {},
        has_saved_progress=data is not None,
    )


@router.put(
    "/progress/{step}",
    response_model=FormProgressUpdateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def update_progress(
    step: ApplicationStep,
    form_data: dict[str, Any] = Body(...),
    manager: ApplicationStateManager = Depends(get_state_manager),
    registry: AutoSaveRegistry = Depends(get_autosave_registry),
) -> FormProgressUpdateResponse:
    """Queue a draft save. Rapid updates collapse into one write per debounce window."""
    saver = registry.get_or_create(manager.persistence, step.value)
    saver.update(form_data)
    return FormProgressUpdateResponse(step_name=step.value, scheduled=saver.has_pending_save)


@router.post("/progress/{step}/flush", response_model=FormProgressFlushResponse)
async def flush_progress(
    step: ApplicationStep,
    manager: ApplicationStateManager = Depends(get_state_manager),
    registry: AutoSaveRegistry = Depends(get_autosave_registry),
) -> FormProgressFlushResponse:
    saver = registry.get(manager.persistence.session_id, step.value)
    saved = await saver.save_now() if saver is not None else False
    return FormProgressFlushResponse(step_name=step.value, saved=saved)


# Step submission


@router.post("/steps/{step}/submit", response_model=SubmitStepResponse)
async def submit_step(
    step: ApplicationStep,
    payload: SubmitStepRequest | None = None,
    manager: ApplicationStateManager = Depends(get_state_manager),
    backend: BackendClient = Depends(get_backend_client),
    catalog: CourseCatalog = Depends(get_catalog),
) -> SubmitStepResponse:
    """
    Submit a wizard step.

    Raises:
        HTTPException 422: Missing or malformed fields (per-field errors)
        HTTPException 409: Step not reachable, or no admission form id
        HTTPException 502: The admissions backend rejected the progress
    """
    agreed_to_terms = payload.agreed_to_terms if payload else False
    try:
        current_step = await service.submit_step(
            manager,
            backend,
            catalog,
            step,
            agreed_to_terms=agreed_to_terms,
        )
    except service.StepValidationError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail={"error": e.error_code, "message": e.message, "errors": e.errors},
        ) from e
    except PortalServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        raise internal_error(e, f"submitting step {step.value}") from e

    return SubmitStepResponse(current_step=current_step, application_data=manager.application_data)


# Documents


@router.post("/documents/random", response_model=RandomDocument, status_code=status.HTTP_201_CREATED)
async def upload_random_document(
    name: str = Form(..., min_length=1, max_length=200),
    file: UploadFile = File(...),
    manager: ApplicationStateManager = Depends(get_state_manager),
    uploader: MediaUploader = Depends(get_media_uploader),
) -> RandomDocument:
    """Upload an extra document under a name chosen by the applicant."""
    content = await file.read()
    try:
        uploaded = await uploader.upload_image(content, file.filename or name, file.content_type)
    except PortalServiceError as e:
        raise to_http_exception(e) from e

    document = RandomDocument(id=str(int(time.time() * 1000)), name=name, url=uploaded.secure_url)
    random_documents = [*manager.application_data.personal_info.random_documents, document]
    await manager.update_section("personal_info", {"random_documents": random_documents})
    return document


@router.post("/documents/{kind}", response_model=DocumentRef, status_code=status.HTTP_201_CREATED)
async def upload_document(
    kind: DocumentKind,
    file: UploadFile = File(...),
    manager: ApplicationStateManager = Depends(get_state_manager),
    uploader: MediaUploader = Depends(get_media_uploader),
) -> DocumentRef:
    """Upload an image and record it in the documents map."""
    content = await file.read()
    try:
        uploaded = await uploader.upload_image(content, file.filename or kind.value, file.content_type)
    except PortalServiceError as e:
        raise to_http_exception(e) from e

    document = DocumentRef(name=file.filename, url=uploaded.secure_url, public_id=uploaded.public_id)
    documents = {**manager.application_data.documents, kind: document}
    await manager.update_application_data({"documents": documents})
    logger.info(f"Stored {kind.value} for session {manager.persistence.session_id}")
    return document


# PDF export


@router.get("/application.pdf")
async def download_application_pdf(
    manager: ApplicationStateManager = Depends(get_state_manager),
) -> Response:
    data = manager.application_data
    try:
        pdf = render_application_pdf(data)
    except Exception as e:
        raise internal_error(e, "rendering application PDF") from e

    reference = data.application_id or data.personal_info.full_name.replace(" ", "_") or "draft"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": attachment_disposition(f"Application_{reference}.pdf")},
    )
