"""
Fixtures for payments tests: a fee structure with coupons, a Razorpay
gateway backed by a fake SDK client, and checkout signatures.
"""

import hashlib
import hmac
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from admission_portal.modules.applications.schemas import ProgramSelection
from admission_portal.modules.backend.catalog import ProgramLookup
from admission_portal.modules.backend.schemas import (
    CouponCode,
    Course,
    FeeStructure,
    Program,
)
from admission_portal.modules.payments.gateway import RazorpayGateway

KEY_ID = "rzp_test_key"
KEY_SECRET = "test_secret"
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def sign(order_id: str, payment_id: str, secret: str = KEY_SECRET) -> str:
    return hmac.new(
        secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256
    ).hexdigest()


def make_coupon(code: str, **overrides) -> CouponCode:
    values = {
        "code": code,
        "discount_type": "percentage",
        "discount_value": 10,
        "valid_from": datetime(2026, 1, 1, tzinfo=UTC),
        "valid_until": datetime(2099, 12, 31, tzinfo=UTC),
        "usage_limit": 100,
        "used_count": 0,
    }
    values.update(overrides)
    return CouponCode(**values)


@pytest.fixture
def fee_structure():
    """Course fee 50,000 plus a 1,000 registration fee."""
    return FeeStructure(
        total_fee=50000,
        registration_fee=1000,
        coupon_codes=[
            make_coupon("SAVE10", maximum_discount=500),
            make_coupon("FLAT200", discount_type="fixed", discount_value=200),
            make_coupon("BIGSPEND", minimum_amount=2000),
            make_coupon("OLD", valid_until=datetime(2025, 12, 31, tzinfo=UTC)),
            make_coupon("OFF", is_active=False),
            make_coupon("USEDUP", usage_limit=5, used_count=5),
        ],
    )


@pytest.fixture
def program_lookup(fee_structure):
    program = Program(
        _id="prog-1",
        slug="interior-design",
        title="B.Des Interior Design",
        fee_structure=fee_structure,
    )
    course = Course(_id="course-1", slug="design", title="Design", programs=[program])
    return ProgramLookup(course=course, program=program)


@pytest.fixture
def mock_catalog(program_lookup):
    catalog = AsyncMock()
    catalog.get_fee_structure = AsyncMock(return_value=program_lookup)
    return catalog


@pytest.fixture
def mock_backend():
    backend = AsyncMock()
    backend.submit_admission = AsyncMock(return_value={"success": True})
    backend.record_payment = AsyncMock(return_value={"success": True})
    return backend


@pytest.fixture
def razorpay_client():
    """Fake Razorpay SDK client echoing the order request."""
    client = MagicMock()
    counter = iter(range(1, 1000))

    def create(data):
        return {"id": f"order_{next(counter)}", "status": "created", **data}

    client.order.create = MagicMock(side_effect=create)
    return client


@pytest.fixture
def gateway(razorpay_client):
    return RazorpayGateway(KEY_ID, KEY_SECRET, client=razorpay_client)


@pytest.fixture
async def applicant(manager):
    """A new applicant who has picked a program."""
    await manager.update_application_data(
        {
            "personal_info": {
                "first_name": "Asha",
                "last_name": "Rao",
                "email": "asha@example.com",
                "phone": "9876543210",
            },
            "program_selection": ProgramSelection(
                program_type="design",
                program_name="interior-design",
                specialization="Interior Design",
                campus="Jodhpur",
            ),
        }
    )
    await manager.persistence.save_user_id("user-1")
    return manager


@pytest.fixture
def no_email(monkeypatch):
    """Patch confirmation and receipt emails."""
    from admission_portal.modules.payments import service

    confirmation = AsyncMock(return_value=True)
    receipt = AsyncMock(return_value=True)
    monkeypatch.setattr(service, "send_application_confirmation", confirmation)
    monkeypatch.setattr(service, "send_payment_receipt", receipt)
    return confirmation, receipt


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def signer():
    """Signs `order_id|payment_id` with the test key secret."""
    return sign
