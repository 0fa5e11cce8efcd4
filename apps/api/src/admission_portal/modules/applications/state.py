"""
Application State Manager

Owns the wizard state of one session (user type, current step, application
data, login data) and keeps it in sync with the dual store. Once
initialized, every mutation saves all four pieces to both substrates.
"""

import logging
from typing import Any

from pydantic import Field

from admission_portal.modules.persistence.session import ApplicationPersistence

from .schemas import (
    AcademicDetails,
    ApplicationData,
    ApplicationStep,
    CamelModel,
    LoginData,
    PersonalInfo,
    ProgramSelection,
    UserType,
)

logger = logging.getLogger(__name__)

# Sections that support a nested (field-level) merge
SECTION_MODELS: dict[str, type[CamelModel]] = {
    "personal_info": PersonalInfo,
    "academic_details": AcademicDetails,
    "program_selection": ProgramSelection,
}


class ApplicationState(CamelModel):
    user_type: UserType | None = None
    current_step: ApplicationStep = ApplicationStep.PERSONAL_INFO
    application_data: ApplicationData = Field(default_factory=ApplicationData)
    login_data: LoginData = Field(default_factory=LoginData)
    session_id: str = ""
    is_initialized: bool = False


def _field_names(model: type[CamelModel], partial: dict[str, Any]) -> dict[str, Any]:
    """Map wire (camelCase) or Python keys of `partial` to field names."""
    by_alias = {info.alias: name for name, info in model.model_fields.items() if info.alias}
    normalized = {}
    for key, value in partial.items():
        name = by_alias.get(key, key)
        if name not in model.model_fields:
            raise ValueError(f"Unknown field for {model.__name__}: {key}")
        normalized[name] = value
    return normalized


class ApplicationStateManager:
    """Session state with write-through persistence."""

    def __init__(self, persistence: ApplicationPersistence):
        self.persistence = persistence
        self.state = ApplicationState(session_id=persistence.session_id)

    @property
    def is_initialized(self) -> bool:
        return self.state.is_initialized

    @property
    def application_data(self) -> ApplicationData:
        return self.state.application_data

    @property
    def login_data(self) -> LoginData:
        return self.state.login_data

    @property
    def user_type(self) -> UserType | None:
        return self.state.user_type

    @property
    def current_step(self) -> ApplicationStep:
        return self.state.current_step

    async def initialize(self) -> ApplicationState:
        """
        Restore state from storage.

        - Authenticated login and a user type: load everything.
        - Otherwise, application data or a current step in the primary store:
          load just those two (never the user type).
        - Otherwise: clear both stores.
        """
        self.state.session_id = await self.persistence.initialize_session()

        saved_login = await self.persistence.get_login_data()
        saved_user_type = await self.persistence.get_user_type()

        if saved_login is not None and saved_login.is_authenticated and saved_user_type:
            saved_application = await self.persistence.get_application_data()
            saved_step = await self.persistence.get_current_step()
            if saved_application is not None:
                self.state.application_data = saved_application
            self.state.login_data = saved_login
            self.state.user_type = saved_user_type
            if saved_step is not None:
                self.state.current_step = saved_step
        else:
            saved_application = await self.persistence.get_application_data(primary_only=True)
            saved_step = await self.persistence.get_current_step(primary_only=True)
            if saved_application is not None or saved_step is not None:
                if saved_application is not None:
                    self.state.application_data = saved_application
                if saved_step is not None:
                    self.state.current_step = saved_step
            else:
                await self.persistence.clear_all()
                await self.persistence.initialize_session()

        self.state.is_initialized = True
        return self.state

    async def save(self) -> None:
        """Write all four pieces of state to both stores."""
        if not self.state.is_initialized:
            return
        await self.persistence.save_application_data(self.state.application_data)
        await self.persistence.save_login_data(self.state.login_data)
        await self.persistence.save_user_type(self.state.user_type)
        await self.persistence.save_current_step(self.state.current_step)

    async def update_application_data(self, partial: dict[str, Any]) -> ApplicationData:
        """
        Shallow merge at the top level of the application data.

        A nested section in `partial` replaces the stored section entirely;
        use `update_section` to merge individual fields of a section.
        """
        merged = self.state.application_data.model_dump()
        merged.update(_field_names(ApplicationData, partial))
        self.state.application_data = ApplicationData.model_validate(merged)
        await self.save()
        return self.state.application_data

    async def update_section(self, section: str, fields: dict[str, Any]) -> ApplicationData:
        """Merge `fields` into one section of the application data."""
        model = SECTION_MODELS.get(section)
        if model is None:
            raise ValueError(f"Unknown section: {section}")
        current = getattr(self.state.application_data, section)
        merged = {**current.model_dump(), **_field_names(model, fields)}
        return await self.update_application_data({section: model.model_validate(merged)})

    async def update_login_data(self, partial: dict[str, Any]) -> LoginData:
        """Shallow merge into the login data."""
        merged = self.state.login_data.model_dump()
        merged["password"] = self.state.login_data.password
        merged.update(_field_names(LoginData, partial))
        self.state.login_data = LoginData.model_validate(merged)
        await self.save()
        return self.state.login_data

    async def set_user_type(self, user_type: UserType | None) -> None:
        self.state.user_type = user_type
        await self.save()

    async def set_current_step(self, step: ApplicationStep) -> None:
        self.state.current_step = step
        await self.save()

    async def reset_application(self) -> None:
        """Restore defaults and clear both stores."""
        self.state.user_type = None
        self.state.current_step = ApplicationStep.PERSONAL_INFO
        self.state.application_data = ApplicationData()
        self.state.login_data = LoginData()
        await self.persistence.clear_all()
        await self.persistence.initialize_session()
        logger.info(f"Application state reset for session {self.state.session_id}")

    async def logout(self) -> None:
        await self.reset_application()
        self.state.current_step = ApplicationStep.LOGIN
        await self.save()

    async def begin_new_application(self) -> None:
        """Start over on the new-applicant track."""
        await self.reset_application()
        self.state.user_type = UserType.NEW
        self.state.current_step = ApplicationStep.PERSONAL_INFO
        await self.save()

    async def save_form_progress(self, step_name: str, form_data: dict[str, Any]) -> None:
        await self.persistence.save_form_progress(step_name, form_data)

    async def get_form_progress(self, step_name: str) -> dict[str, Any] | None:
        return await self.persistence.get_form_progress(step_name)

    async def has_saved_data(self) -> bool:
        return await self.persistence.has_saved_data()

    async def session_info(self) -> dict[str, Any]:
        has_data = await self.persistence.has_saved_data()
        return {
            "session_id": self.state.session_id,
            "has_data": has_data,
            "current_step": self.state.current_step,
            "is_active": bool(self.state.session_id and has_data),
        }
