"""
Tests for the admission form and payment receipt PDFs.
"""

from datetime import UTC, datetime

from admission_portal.modules.applications.schemas import (
    AcademicDetails,
    ApplicationData,
    PaymentDetails,
    PaymentOption,
    PersonalInfo,
    ProgramSelection,
)
from admission_portal.modules.documents.pdf import (
    _money,
    attachment_disposition,
    render_application_pdf,
    render_payment_receipt_pdf,
)
from admission_portal.modules.payments.portal import (
    PaymentPortalData,
    PortalPaymentReceipt,
    PortalPaymentType,
)

TODAY = datetime(2026, 3, 1, tzinfo=UTC)


def is_pdf(content: bytes) -> bool:
    return content.startswith(b"%PDF") and b"%%EOF" in content[-64:]


class TestApplicationPdf:
    def test_empty_application(self):
        assert is_pdf(render_application_pdf(ApplicationData(), today=TODAY))

    def test_completed_application(self):
        data = ApplicationData(
            personal_info=PersonalInfo(
                first_name="Asha",
                last_name="O'Neil <Rao>",
                email="asha@example.com",
                permanent_address="12 MG Road & Sons",
            ),
            academic_details=AcademicDetails(
                tenth_board="CBSE",
                tenth_percentage="91.2",
                diploma_institution="Polytechnic",
                graduation_university="JNVU",
            ),
            program_selection=ProgramSelection(
                program_type="interior-design", program_name="B.Des", campus="Jodhpur"
            ),
            payment_complete=True,
            payment_details=PaymentDetails(
                order_id="order_1",
                payment_id="pay_1",
                amount=900,
                application_fee=1000,
                remaining_amount=50000,
                payment_option=PaymentOption.APPLICATION,
                discount_amount=100,
                coupon_code="SAVE10",
                timestamp="2026-03-01T12:00:00+00:00",
            ),
            application_id="APP1760000000000",
        )

        assert is_pdf(render_application_pdf(data, today=TODAY))


class TestReceiptPdf:
    def test_without_recent_payment(self):
        portal = PaymentPortalData(student_id="student-1")
        assert is_pdf(render_payment_receipt_pdf(portal, None, today=TODAY))

    def test_with_recent_payment_and_history(self):
        portal = PaymentPortalData.model_validate(
            {
                "studentId": "student-1",
                "fullName": "Vikram Singh",
                "paidAmount": 1000,
                "remainingAmount": 1500,
                "paymentTransactions": [
                    {
                        "transactionId": "pay_1",
                        "amount": 1000,
                        "status": "success",
                        "createdAt": "2026-02-01T10:00:00Z",
                    }
                ],
            }
        )
        receipt = PortalPaymentReceipt(
            order_id="order_1",
            payment_id="pay_1",
            amount=1000,
            payment_type=PortalPaymentType.PARTIAL,
            paid_amount=1000,
            remaining_amount=1500,
            recorded=True,
            timestamp="2026-03-01T12:00:00+00:00",
        )

        assert is_pdf(render_payment_receipt_pdf(portal, receipt, today=TODAY))


class TestMoney:
    def test_rupee_sign_is_spelled_out(self):
        assert _money(150000) == "Rs. 1,50,000"
        assert _money(None) == "Rs. 0"


class TestAttachmentDisposition:
    def test_ascii_name(self):
        assert attachment_disposition("receipt-student-1.pdf") == (
            "attachment; filename=\"receipt-student-1.pdf\"; filename*=UTF-8''receipt-student-1.pdf"
        )

    def test_header_is_latin1_safe(self):
        header = attachment_disposition('Application_José "Pepe".pdf')

        header.encode("latin-1")
        assert 'filename="Application_Jos_Pepe_.pdf"' in header
        assert "Jos%C3%A9%20%22Pepe%22" in header
