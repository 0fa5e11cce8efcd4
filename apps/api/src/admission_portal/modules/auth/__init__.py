"""Authentication module."""

from admission_portal.modules.auth.router import router
from admission_portal.modules.auth.schemas import AuthSessionResponse

__all__ = ["router", "AuthSessionResponse"]
