"""
Session dependencies

The session id travels in an httpOnly cookie. Every request gets its own
persistence and state manager bound to that id.
"""

from fastapi import Depends, Request, Response
from redis.asyncio import Redis

from admission_portal.core.config import settings
from admission_portal.core.redis import get_redis
from admission_portal.modules.backend.catalog import CourseCatalog
from admission_portal.modules.backend.client import BackendClient, get_backend_client
from admission_portal.modules.persistence.providers import build_persistence
from admission_portal.modules.persistence.session import ApplicationPersistence

from .state import ApplicationStateManager


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_cookie_max_age_seconds,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.session_cookie_secure,
    )


async def get_persistence(
    request: Request,
    response: Response,
    redis: Redis | None = Depends(get_redis),
) -> ApplicationPersistence:
    persistence = build_persistence(redis, request.cookies.get(settings.session_cookie_name))
    set_session_cookie(response, persistence.session_id)
    return persistence


async def get_state_manager(
    persistence: ApplicationPersistence = Depends(get_persistence),
) -> ApplicationStateManager:
    """State manager for the request's session, restored from storage."""
    manager = ApplicationStateManager(persistence)
    await manager.initialize()
    return manager


def get_catalog(backend: BackendClient = Depends(get_backend_client)) -> CourseCatalog:
    return CourseCatalog(backend)
