"""
Unit tests for the existing-student payment portal.

These tests cover:
- Full and partial payment amounts
- Building the portal view from a backend profile
- Sign in, checkout and confirmation against the session
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from admission_portal.modules.backend.client import BackendError
from admission_portal.modules.backend.schemas import AuthResponse, BackendUser, LoginRequest
from admission_portal.modules.payments import service
from admission_portal.modules.payments.exceptions import (
    InvalidAmountError,
    PaymentVerificationError,
    PortalSessionError,
)
from admission_portal.modules.payments.portal import (
    EXISTING_STUDENT_KEY,
    ExistingStudentData,
    PaymentPortalData,
    PortalPaymentType,
    load_student,
    payment_amount,
)


def student_profile(paid: float = 0, due: float = 2500) -> dict:
    return {
        "_id": "student-1",
        "email": "login@example.com",
        "isActive": True,
        "admissionFormId": {
            "_id": "form-1",
            "firstName": "Vikram",
            "lastName": "Singh",
            "email": "vikram@example.com",
            "phone": "9876543210",
            "programName": "interior-design",
            "campus": "Jodhpur",
            "createdAt": "2025-07-01T10:00:00.000Z",
            "applicationStatus": "completed",
        },
        "paymentInformation": [
            {
                "_id": "pi-1",
                "totalFee": paid + due,
                "registrationFee": 500,
                "totalAmountPaid": paid,
                "totalAmountDue": due,
                "paymentStatus": "partial" if paid else "pending",
            }
        ],
    }


@pytest.fixture
def portal_backend(mock_backend):
    profile = AuthResponse(success=True, data=BackendUser.model_validate(student_profile()))
    mock_backend.login = AsyncMock(return_value=profile)
    mock_backend.get_profile = AsyncMock(return_value=profile)
    return mock_backend


class TestPaymentAmount:
    def test_full_pays_remaining(self):
        assert payment_amount(PortalPaymentType.FULL, 2500) == 2500

    def test_partial_is_capped_at_remaining(self):
        assert payment_amount(PortalPaymentType.PARTIAL, 2500, 1000) == 1000
        assert payment_amount(PortalPaymentType.PARTIAL, 2500, 9000) == 2500

    @pytest.mark.parametrize(
        "payment_type,remaining,custom",
        [
            (PortalPaymentType.FULL, 0, None),
            (PortalPaymentType.PARTIAL, 2500, None),
            (PortalPaymentType.PARTIAL, 2500, -5),
        ],
    )
    def test_nothing_to_pay(self, payment_type, remaining, custom):
        with pytest.raises(InvalidAmountError, match="Invalid payment amount"):
            payment_amount(payment_type, remaining, custom)


class TestPortalView:
    def test_from_profile(self):
        user = BackendUser.model_validate(student_profile(paid=500, due=2000))

        portal = PaymentPortalData.from_profile(user, now=datetime(2026, 3, 1, tzinfo=UTC))

        assert portal.student_id == "student-1"
        assert portal.full_name == "Vikram Singh"
        assert portal.email == "vikram@example.com"
        assert portal.paid_amount == 500
        assert portal.remaining_amount == 2000
        assert portal.has_initial_payment
        assert portal.academic_year == "2026"
        assert portal.application_status == "completed"

    def test_profile_without_payments(self):
        user = BackendUser.model_validate({"_id": "student-2", "email": "s@example.com"})

        portal = PaymentPortalData.from_profile(user)

        assert portal.email == "s@example.com"
        assert portal.remaining_amount == 0
        assert not portal.has_initial_payment

    def test_apply_payment(self):
        student = ExistingStudentData(id="student-1", paid_amount=0, remaining_amount=2500)

        updated = student.apply_payment(1000)

        assert updated.paid_amount == 1000
        assert updated.remaining_amount == 1500
        assert updated.has_initial_payment
        assert student.paid_amount == 0


class TestPortalSession:
    @pytest.mark.asyncio
    async def test_no_student_signed_in(self, persistence):
        with pytest.raises(PortalSessionError):
            await load_student(persistence)

    @pytest.mark.asyncio
    async def test_unreadable_student_is_discarded(self, persistence):
        await persistence.save_session_value(EXISTING_STUDENT_KEY, {"fullName": "no id"})

        with pytest.raises(PortalSessionError):
            await load_student(persistence)

        assert await persistence.get_session_value(EXISTING_STUDENT_KEY) is None

    @pytest.mark.asyncio
    async def test_login_stores_summary_from_profile(self, persistence, portal_backend):
        portal = await service.portal_login(
            persistence, portal_backend, LoginRequest(email="login@example.com", password="pw")
        )

        portal_backend.get_profile.assert_awaited_once_with("student-1")
        student = await load_student(persistence)
        assert student.id == "student-1"
        assert student.remaining_amount == 2500
        assert portal.full_name == "Vikram Singh"
        assert await persistence.get_user_id() == "student-1"

    @pytest.mark.asyncio
    async def test_failed_login(self, persistence, mock_backend):
        mock_backend.login = AsyncMock(return_value=AuthResponse(success=False, message="Nope"))

        with pytest.raises(BackendError) as exc_info:
            await service.portal_login(
                persistence, mock_backend, LoginRequest(email="a@example.com", password="pw")
            )

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_clears_student(self, persistence, portal_backend):
        await service.portal_login(
            persistence, portal_backend, LoginRequest(email="login@example.com", password="pw")
        )

        await service.portal_logout(persistence)

        with pytest.raises(PortalSessionError):
            await load_student(persistence)


class TestPortalPayment:
    """Tests for a partial payment of 1,000 against a 2,500 balance."""

    async def _signed_in(self, persistence, backend):
        await service.portal_login(
            persistence, backend, LoginRequest(email="login@example.com", password="pw")
        )

    @pytest.mark.asyncio
    async def test_checkout_options(self, persistence, portal_backend, gateway, razorpay_client):
        await self._signed_in(persistence, portal_backend)

        options = await service.start_portal_checkout(
            persistence, portal_backend, gateway, PortalPaymentType.PARTIAL, 1000
        )

        assert razorpay_client.order.create.call_args.kwargs["data"]["amount"] == 100000
        assert options["amount"] == 100000
        assert options["description"] == "Partial Payment - interior-design"
        assert options["prefill"]["email"] == "vikram@example.com"

    @pytest.mark.asyncio
    async def test_confirm_applies_payment(
        self, persistence, portal_backend, gateway, signer, no_email
    ):
        await self._signed_in(persistence, portal_backend)
        options = await service.start_portal_checkout(
            persistence, portal_backend, gateway, PortalPaymentType.PARTIAL, 1000
        )
        order_id = options["order_id"]

        receipt = await service.confirm_portal_payment(
            persistence, portal_backend, gateway, order_id, "pay_9", signer(order_id, "pay_9")
        )

        assert receipt.amount == 1000
        assert receipt.paid_amount == 1000
        assert receipt.remaining_amount == 1500
        assert receipt.recorded

        student = await load_student(persistence)
        assert student.remaining_amount == 1500

        user_id, record = portal_backend.record_payment.call_args.args
        assert user_id == "student-1"
        assert record.transaction_id == "pay_9"
        assert record.description == "Partial payment"

        _, email_receipt = no_email
        assert email_receipt.call_args.kwargs["remaining_amount"] == 1500
        assert await service.last_portal_receipt(persistence) == receipt

    @pytest.mark.asyncio
    async def test_confirm_survives_record_failure(
        self, persistence, portal_backend, gateway, signer, no_email
    ):
        portal_backend.record_payment = AsyncMock(side_effect=BackendError("down"))
        await self._signed_in(persistence, portal_backend)
        options = await service.start_portal_checkout(
            persistence, portal_backend, gateway, PortalPaymentType.FULL
        )
        order_id = options["order_id"]

        receipt = await service.confirm_portal_payment(
            persistence, portal_backend, gateway, order_id, "pay_9", signer(order_id, "pay_9")
        )

        assert receipt.remaining_amount == 0
        assert receipt.recorded is False

    @pytest.mark.asyncio
    async def test_confirm_rejects_other_order(self, persistence, portal_backend, gateway, signer):
        await self._signed_in(persistence, portal_backend)
        await service.start_portal_checkout(
            persistence, portal_backend, gateway, PortalPaymentType.FULL
        )

        with pytest.raises(PaymentVerificationError):
            await service.confirm_portal_payment(
                persistence, portal_backend, gateway, "order_x", "pay_9", signer("order_x", "pay_9")
            )

        assert (await load_student(persistence)).remaining_amount == 2500


class TestPortalSessionSummary:
    """The session summary decides the amounts even when the profile disagrees."""

    @pytest.fixture
    def summary(self):
        return ExistingStudentData(
            id="student-1",
            full_name="Vikram Singh",
            email="vikram@example.com",
            selected_program="interior-design",
            paid_amount=0,
            remaining_amount=2500,
        )

    @pytest.fixture
    def bare_profile_backend(self, mock_backend):
        user = BackendUser.model_validate({"_id": "student-1", "email": "login@example.com"})
        mock_backend.get_profile = AsyncMock(return_value=AuthResponse(success=True, data=user))
        return mock_backend

    @pytest.mark.asyncio
    async def test_full_payment_uses_session_remaining(
        self, persistence, bare_profile_backend, gateway, razorpay_client, summary
    ):
        await persistence.save_session_value(EXISTING_STUDENT_KEY, summary.to_wire())

        options = await service.start_portal_checkout(
            persistence, bare_profile_backend, gateway, PortalPaymentType.FULL
        )

        assert razorpay_client.order.create.call_args.kwargs["data"]["amount"] == 250000
        assert options["amount"] == 250000
        bare_profile_backend.get_profile.assert_not_called()

        student = await load_student(persistence)
        assert student.paid_amount == 0
        assert student.remaining_amount == 2500

    @pytest.mark.asyncio
    async def test_view_keeps_applied_payment(
        self, persistence, portal_backend, gateway, signer, no_email, summary
    ):
        await persistence.save_session_value(EXISTING_STUDENT_KEY, summary.to_wire())
        options = await service.start_portal_checkout(
            persistence, portal_backend, gateway, PortalPaymentType.PARTIAL, 1000
        )
        order_id = options["order_id"]
        await service.confirm_portal_payment(
            persistence, portal_backend, gateway, order_id, "pay_3", signer(order_id, "pay_3")
        )

        portal = await service.open_portal(persistence, portal_backend)

        assert portal.paid_amount == 1000
        assert portal.remaining_amount == 1500
        assert portal.total_amount_due == 1500
        assert (await load_student(persistence)).remaining_amount == 1500

    @pytest.mark.asyncio
    async def test_profile_fills_missing_summary(self, persistence, portal_backend):
        await persistence.save_user_id("student-1")

        portal = await service.open_portal(persistence, portal_backend)

        portal_backend.get_profile.assert_awaited_once_with("student-1")
        assert portal.remaining_amount == 2500
        assert (await load_student(persistence)).full_name == "Vikram Singh"

    @pytest.mark.asyncio
    async def test_no_summary_and_no_user(self, persistence, portal_backend):
        with pytest.raises(PortalSessionError):
            await service.open_portal(persistence, portal_backend)

        portal_backend.get_profile.assert_not_called()

    @pytest.mark.asyncio
    async def test_logout_forgets_user(self, persistence, portal_backend):
        await service.portal_login(
            persistence, portal_backend, LoginRequest(email="login@example.com", password="pw")
        )

        await service.portal_logout(persistence)

        assert await persistence.get_user_id() is None
        with pytest.raises(PortalSessionError):
            await service.open_portal(persistence, portal_backend)
