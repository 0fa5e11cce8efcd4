"""
Fixtures for admissions backend tests.
"""

import httpx
import pytest

from admission_portal.modules.backend.client import BackendClient


class Recorder:
    """Collects requests seen by a MockTransport handler."""

    def __init__(self):
        self.requests: list[httpx.Request] = []


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_client(recorder):
    """Build a BackendClient whose transport answers with `handler`."""

    def factory(handler) -> BackendClient:
        def record(request: httpx.Request) -> httpx.Response:
            recorder.requests.append(request)
            return handler(request)

        http = httpx.AsyncClient(
            base_url="https://backend.test/api/v1",
            transport=httpx.MockTransport(record),
        )
        return BackendClient("https://backend.test/api/v1", client=http)

    return factory


@pytest.fixture
def courses_payload():
    """Two courses; one inactive, one with an inactive program."""
    return {
        "success": True,
        "data": [
            {
                "_id": "course-1",
                "slug": "design",
                "title": "Design",
                "isActive": True,
                "programs": [
                    {
                        "_id": "prog-1",
                        "slug": "interior-design",
                        "title": "Interior Design",
                        "isActive": True,
                        "feeStructure": {
                            "totalFee": 50000,
                            "registrationFee": 1000,
                            "emiOptions": [
                                {"months": 6, "monthlyAmount": 8500, "totalAmount": 51000},
                                {
                                    "months": 12,
                                    "monthlyAmount": 4400,
                                    "totalAmount": 52800,
                                    "isActive": False,
                                },
                            ],
                        },
                    },
                    {"_id": "prog-2", "slug": "fashion", "isActive": False},
                ],
            },
            {
                "_id": "course-2",
                "slug": "media",
                "isActive": False,
                "programs": [{"_id": "prog-3", "slug": "film"}],
            },
        ],
    }
