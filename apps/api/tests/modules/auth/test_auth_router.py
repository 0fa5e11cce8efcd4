"""
Router tests for signup, login and logout.
"""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from admission_portal.modules.applications.dependencies import get_persistence
from admission_portal.modules.autosave.registry import AutoSaveRegistry, get_autosave_registry
from admission_portal.modules.backend.client import BackendError, get_backend_client
from admission_portal.modules.backend.schemas import AuthResponse, BackendUser

SIGNUP = {
    "firstName": "Asha",
    "lastName": "Rao",
    "email": "asha@example.com",
    "phone": "9876543210",
    "password": "secret1",
    "confirmPassword": "secret1",
}

LOGIN = {"email": "asha@example.com", "password": "secret1"}


def auth_response(form: dict | None = None, payments: list | None = None) -> AuthResponse:
    user = {"_id": "user-1", "email": "asha@example.com", "sessionToken": "tok"}
    if form is not None:
        user["admissionFormId"] = form
    if payments is not None:
        user["paymentInformation"] = payments
    return AuthResponse(success=True, message="ok", data=BackendUser.model_validate(user))


@pytest.fixture
def backend():
    return AsyncMock()


@pytest.fixture
async def client(app, persistence, backend):
    registry = AutoSaveRegistry(debounce_seconds=0.01)
    app.dependency_overrides[get_persistence] = lambda: persistence
    app.dependency_overrides[get_backend_client] = lambda: backend
    app.dependency_overrides[get_autosave_registry] = lambda: registry
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    await registry.close_all()


class TestSignup:
    @pytest.mark.asyncio
    async def test_signup_starts_wizard(self, client, backend, persistence):
        backend.signup = AsyncMock(return_value=auth_response({"_id": "form-1"}))

        response = await client.post("/api/v1/auth/signup", json=SIGNUP)

        assert response.status_code == 201
        body = response.json()
        assert body["userId"] == "user-1"
        assert body["userType"] == "new"
        assert body["currentStep"] == "personal-info"
        assert await persistence.get_user_id() == "user-1"
        assert await persistence.get_admission_form_id() == "form-1"

    @pytest.mark.asyncio
    async def test_password_mismatch(self, client, backend):
        backend.signup = AsyncMock()

        response = await client.post(
            "/api/v1/auth/signup", json={**SIGNUP, "confirmPassword": "other1"}
        )

        assert response.status_code == 422
        backend.signup.assert_not_called()

    @pytest.mark.asyncio
    async def test_refused_signup(self, client, backend):
        backend.signup = AsyncMock(
            return_value=AuthResponse(success=False, message="Email already registered")
        )

        response = await client.post("/api/v1/auth/signup", json=SIGNUP)

        assert response.status_code == 400
        assert response.json()["detail"] == {
            "error": "AUTHENTICATION_FAILED",
            "message": "Email already registered",
        }


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_resumes_from_profile(self, client, backend):
        backend.login = AsyncMock(
            return_value=auth_response({"_id": "form-1", "firstName": "Asha", "campus": "Jodhpur"})
        )

        response = await client.post("/api/v1/auth/login", json=LOGIN)

        assert response.status_code == 200
        body = response.json()
        assert body["currentStep"] == "personal-info"
        assert body["applicationData"]["personalInfo"]["firstName"] == "Asha"
        assert body["applicationData"]["programSelection"]["campus"] == "Jodhpur"

    @pytest.mark.asyncio
    async def test_paid_applicant_lands_on_review(self, client, backend):
        backend.login = AsyncMock(
            return_value=auth_response(
                {"_id": "form-1", "paymentComplete": True},
                [{"_id": "pi-1", "totalAmountPaid": 1000, "registrationFee": 1000}],
            )
        )

        response = await client.post("/api/v1/auth/login", json=LOGIN)

        assert response.json()["currentStep"] == "review"

    @pytest.mark.asyncio
    async def test_completed_applicant_lands_on_success(self, client, backend):
        backend.login = AsyncMock(
            return_value=auth_response({"_id": "form-1", "applicationStatus": "completed"})
        )

        response = await client.post("/api/v1/auth/login", json=LOGIN)

        assert response.json()["currentStep"] == "success"

    @pytest.mark.asyncio
    async def test_password_is_not_kept(self, client, backend, primary_store, secondary_store):
        backend.login = AsyncMock(return_value=auth_response({"_id": "form-1"}))

        await client.post("/api/v1/auth/login", json=LOGIN)
        session = (await client.get("/api/v1/session")).json()

        assert session["loginData"]["isAuthenticated"] is True
        assert "password" not in session["loginData"]
        stored = " ".join(
            str(value) for store in (primary_store, secondary_store) for value in store._data.values()
        )
        assert "secret1" not in stored

    @pytest.mark.asyncio
    async def test_unsuccessful_login(self, client, backend):
        backend.login = AsyncMock(return_value=AuthResponse(success=False))

        response = await client.post("/api/v1/auth/login", json=LOGIN)

        assert response.status_code == 401
        assert response.json()["detail"]["message"] == (
            "Login failed. Please check your credentials."
        )

    @pytest.mark.asyncio
    async def test_backend_rejection_message(self, client, backend):
        backend.login = AsyncMock(
            side_effect=BackendError("Invalid email or password", status_code=401)
        )

        response = await client.post("/api/v1/auth/login", json=LOGIN)

        assert response.status_code == 401
        assert response.json()["detail"]["message"] == "Invalid email or password"


class TestLogout:
    @pytest.mark.asyncio
    async def test_logout_clears_session(self, client, backend, persistence):
        backend.login = AsyncMock(return_value=auth_response({"_id": "form-1"}))
        await client.post("/api/v1/auth/login", json=LOGIN)

        response = await client.post("/api/v1/auth/logout")

        assert response.status_code == 200
        body = response.json()
        assert body["currentStep"] == "login"
        assert body["loginData"]["isAuthenticated"] is False
        assert await persistence.get_user_id() is None
