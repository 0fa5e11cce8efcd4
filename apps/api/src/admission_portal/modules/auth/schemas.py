"""Authentication schemas."""

from admission_portal.modules.applications.schemas import (
    ApplicationData,
    ApplicationStep,
    CamelModel,
    UserType,
)


class AuthSessionResponse(CamelModel):
    """Session state after a successful signup or login."""

    message: str
    user_id: str
    user_type: UserType = UserType.NEW
    current_step: ApplicationStep
    application_data: ApplicationData
