"""
PDF Documents

Renders the printable admission form for new applicants and the payment
receipt for existing students with reportlab's platypus layout engine.
Both functions return the finished document as bytes.
"""

import logging
import re
from datetime import UTC, datetime
from io import BytesIO
from urllib.parse import quote
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from admission_portal.core.config import settings
from admission_portal.core.money import format_inr
from admission_portal.modules.applications.schemas import ApplicationData, PaymentOption
from admission_portal.modules.payments.portal import PaymentPortalData, PortalPaymentReceipt

logger = logging.getLogger(__name__)

CONTACT_LINE = "Email: admissions@inframe.edu.in | Phone: +91 98765 43210"
ADDRESS_LINE = "D-98 Pal Link Road (Behind Kamla Nehru Hospital) Jodhpur"
WEBSITE = "www.inframeschool.com"

PAYMENT_METHODS = {
    PaymentOption.APPLICATION: "Application Fee (Online)",
    PaymentOption.COURSE: "Full Course Fee (Online)",
    PaymentOption.CUSTOM: "Custom Payment (Online)",
}

APPLICATION_TERMS = [
    "The applicant must fulfill the eligibility criteria as specified in the admission guidelines.",
    "Admission is subject to verification of all original documents during admission process.",
    "If 12th results are awaited and the student does not qualify, the school is not liable.",
    "The applicant must provide accurate, current, and complete information in the form.",
    "Any misinformation or false documents will result in immediate disqualification.",
    "The submission of the admission form does not guarantee admission.",
    "Failure to provide required documents within stipulated time may result in rejection.",
    "Admission is confirmed only after payment of the full admission fee as per fee structure.",
    "The fee is non-refundable in any circumstances.",
    "Failure to make timely payments may result in suspension or termination of enrollment.",
    "Rs. 50 per day penalty will be charged for late fee payments.",
    "The institution reserves the right to revoke admission if any discrepancies are found.",
    "Upon admission, the student agrees to abide by the rules and regulations of the institution.",
    "The information provided will be used solely for admission process and remain confidential.",
    "The institution reserves the right to modify terms and conditions at any time.",
    "Course is non-transferable and fees is not refundable in any case.",
    "Students wishing to withdraw from the course must notify the institution in writing.",
]

RECEIPT_NOTES = [
    "Please keep this document safe for future reference.",
    "The remaining balance must be paid as per the fee structure.",
    "For any payment-related queries, contact the admission office.",
    "Payment receipts are automatically generated and are valid for official purposes.",
    "Late payment penalties may apply as per institutional policy.",
    "All payments are non-refundable as per admission terms.",
]

DECLARATION = (
    "I hereby declare that all the information provided above is true and correct to the "
    "best of my knowledge. I understand that any false information may lead to rejection "
    "of my application."
)

_LABEL_COLOR = HexColor("#374151")
_RULE_COLOR = HexColor("#d1d5db")


def attachment_disposition(filename: str) -> str:
    """
    Content-Disposition for a download.

    Headers are latin-1 on the wire, so `filename` carries an ASCII-only
    fallback and `filename*` the UTF-8 name.
    """
    fallback = re.sub(r"[^A-Za-z0-9._-]+", "_", filename)
    fallback = re.sub(r"_{2,}", "_", fallback)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


def _money(amount: float | None) -> str:
    # The standard PDF fonts have no rupee glyph
    return format_inr(amount or 0).replace("₹", "Rs. ")


def _styles():
    styles = getSampleStyleSheet()
    styles.add(
        ParagraphStyle(
            name="Institution",
            parent=styles["Title"],
            fontSize=18,
            spaceAfter=2,
            alignment=TA_CENTER,
            fontName="Helvetica-Bold",
        )
    )
    styles.add(
        ParagraphStyle(
            name="DocHeading",
            parent=styles["Normal"],
            fontSize=12,
            alignment=TA_CENTER,
            fontName="Helvetica-Bold",
            spaceAfter=2,
        )
    )
    styles.add(
        ParagraphStyle(
            name="Centered",
            parent=styles["Normal"],
            fontSize=8,
            alignment=TA_CENTER,
            textColor=_LABEL_COLOR,
        )
    )
    styles.add(
        ParagraphStyle(
            name="SectionTitle",
            parent=styles["Normal"],
            fontSize=10,
            fontName="Helvetica-Bold",
            spaceBefore=8,
            spaceAfter=4,
        )
    )
    styles.add(
        ParagraphStyle(name="Cell", parent=styles["Normal"], fontSize=8, leading=10)
    )
    styles.add(
        ParagraphStyle(
            name="CellLabel",
            parent=styles["Normal"],
            fontSize=8,
            leading=10,
            fontName="Helvetica-Bold",
            textColor=_LABEL_COLOR,
        )
    )
    styles.add(
        ParagraphStyle(name="Fine", parent=styles["Normal"], fontSize=7, leading=9)
    )
    return styles


def _header(styles, title: str) -> list:
    return [
        Paragraph(escape(settings.institution_name), styles["Institution"]),
        Paragraph(escape(title), styles["DocHeading"]),
        Paragraph(CONTACT_LINE, styles["Centered"]),
        Spacer(1, 6 * mm),
    ]


def _footer(styles) -> list:
    return [
        Spacer(1, 8 * mm),
        Paragraph(escape(settings.institution_name), styles["Centered"]),
        Paragraph(ADDRESS_LINE, styles["Centered"]),
        Paragraph(f"{CONTACT_LINE} | {WEBSITE}", styles["Centered"]),
    ]


def _fields(styles, rows: list[tuple[str, str]]) -> Table:
    """Label/value pairs laid out two per row."""
    cells = []
    for i in range(0, len(rows), 2):
        row = []
        for label, value in rows[i : i + 2]:
            row.append(Paragraph(escape(label), styles["CellLabel"]))
            row.append(Paragraph(escape(value or "-"), styles["Cell"]))
        while len(row) < 4:
            row.append("")
        cells.append(row)

    table = Table(cells, colWidths=[32 * mm, 53 * mm, 32 * mm, 53 * mm])
    table.setStyle(
        TableStyle(
            [
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("LINEBELOW", (0, 0), (-1, -1), 0.25, _RULE_COLOR),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
            ]
        )
    )
    return table


def _grid(styles, header: list[str], rows: list[list[str]]) -> Table:
    data = [[Paragraph(escape(h), styles["CellLabel"]) for h in header]]
    data += [[Paragraph(escape(v or "-"), styles["Cell"]) for v in row] for row in rows]
    table = Table(data, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), HexColor("#f3f4f6")),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ]
        )
    )
    return table


def _bullets(styles, items: list[str]) -> list:
    return [Paragraph(f"&bull; {escape(item)}", styles["Fine"]) for item in items]


def _signature(styles, label: str, today: str) -> Table:
    table = Table(
        [
            [
                Paragraph(escape(label), styles["CellLabel"]),
                "",
                Paragraph("Date:", styles["CellLabel"]),
                Paragraph(today, styles["Cell"]),
            ]
        ],
        colWidths=[40 * mm, 60 * mm, 15 * mm, 55 * mm],
        rowHeights=[14 * mm],
    )
    table.setStyle(
        TableStyle(
            [
                ("LINEBELOW", (1, 0), (1, 0), 0.5, colors.black),
                ("VALIGN", (0, 0), (-1, -1), "BOTTOM"),
            ]
        )
    )
    return table


def _percent(value: str) -> str:
    return f"{value}%" if value else ""


def _build(story: list, title: str) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=20 * mm,
        leftMargin=20 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=title,
        author=settings.institution_name,
    )
    doc.build(story)
    return buffer.getvalue()


def render_application_pdf(data: ApplicationData, today: datetime | None = None) -> bytes:
    """Render the admission form for an application."""
    styles = _styles()
    today_text = (today or datetime.now(UTC)).strftime("%d/%m/%Y")
    personal = data.personal_info
    academic = data.academic_details
    selection = data.program_selection
    payment = data.payment_details

    story = _header(styles, "ADMISSION FORM")
    story.append(
        _fields(
            styles,
            [
                ("Application ID", data.application_id or ""),
                ("Course", selection.program_type.replace("-", " ")),
            ],
        )
    )

    story.append(Paragraph("PERSONAL INFORMATION", styles["SectionTitle"]))
    story.append(
        _fields(
            styles,
            [
                ("Name of the Applicant", personal.full_name),
                ("Religion", personal.religion),
                ("Date of Birth", personal.date_of_birth),
                ("Gender", personal.gender),
                ("Mobile No", personal.phone),
                ("Email ID", personal.email),
                ("Aadhar Card No", personal.aadhar_number),
                ("City / State", f"{personal.city} {personal.state} {personal.pincode}".strip()),
                ("Permanent Address", personal.permanent_address),
                ("Temporary Address", personal.temporary_address),
            ],
        )
    )

    story.append(Paragraph("GUARDIAN DETAILS", styles["SectionTitle"]))
    story.append(
        _fields(
            styles,
            [
                ("Father's Name", personal.fathers_name),
                ("Mother's Name", personal.mothers_name),
                ("Father's Occupation", personal.fathers_occupation),
                ("Mother's Occupation", personal.mothers_occupation),
                ("Father's Phone", personal.fathers_phone),
                ("Mother's Phone", personal.mothers_phone),
                ("Parent's Address", personal.parents_address or personal.permanent_address),
            ],
        )
    )

    story.append(Paragraph("LOCAL GUARDIAN DETAILS", styles["SectionTitle"]))
    story.append(
        _fields(
            styles,
            [
                ("Local Guardian Name", personal.local_guardian_name),
                ("Mobile No", personal.local_guardian_phone),
                ("Relation", personal.local_guardian_relation),
                ("Local Guardian Address", personal.local_guardian_address),
            ],
        )
    )

    story.append(Paragraph("EDUCATIONAL DETAILS", styles["SectionTitle"]))
    education_rows = [
        [
            "10th",
            academic.tenth_board,
            academic.tenth_institution,
            "",
            academic.tenth_year,
            _percent(academic.tenth_percentage),
        ],
        [
            "12th",
            academic.twelfth_board,
            academic.twelfth_institution,
            academic.twelfth_stream,
            academic.twelfth_year,
            _percent(academic.twelfth_percentage),
        ],
    ]
    if academic.diploma_institution:
        education_rows.append(
            [
                "Diploma",
                "",
                academic.diploma_institution,
                academic.diploma_stream,
                academic.diploma_year,
                _percent(academic.diploma_percentage),
            ]
        )
    if academic.graduation_university:
        education_rows.append(
            [
                "Graduation",
                academic.graduation_university,
                "",
                "",
                academic.graduation_year,
                _percent(academic.graduation_percentage),
            ]
        )
    story.append(
        _grid(
            styles,
            ["Exam", "Board / University", "Institution", "Stream", "Year", "Percentage"],
            education_rows,
        )
    )

    story.append(Paragraph("PROGRAM SELECTION", styles["SectionTitle"]))
    story.append(
        _fields(
            styles,
            [
                ("Selected Program", selection.program_name or "Not Selected"),
                ("Category", selection.program_category),
                ("Specialization", selection.specialization),
                ("Campus", selection.campus),
            ],
        )
    )

    story.append(Paragraph("PAYMENT INFORMATION", styles["SectionTitle"]))
    method = PAYMENT_METHODS.get(payment.payment_option) if payment else None
    payment_rows = [
        ("Payment Method", method or "Not Selected"),
        ("Application Fee", _money(payment.application_fee if payment else 0)),
        ("Amount Paid", _money(payment.amount if payment else 0)),
        ("Remaining Amount", _money(payment.remaining_amount if payment else 0)),
    ]
    if payment and payment.discount_amount:
        payment_rows.append(("Discount", _money(payment.discount_amount)))
        payment_rows.append(("Coupon", payment.coupon_code or ""))
    if payment and payment.payment_id:
        payment_rows.append(("Payment ID", payment.payment_id))
    story.append(_fields(styles, payment_rows))

    story.append(Paragraph("TERMS &amp; CONDITIONS", styles["SectionTitle"]))
    story.extend(_bullets(styles, APPLICATION_TERMS))

    story.append(Spacer(1, 6 * mm))
    story.append(_signature(styles, "Signature of Applicant:", today_text))
    story.append(Paragraph("DECLARATION:", styles["SectionTitle"]))
    story.append(Paragraph(escape(DECLARATION), styles["Fine"]))
    story.extend(_footer(styles))

    pdf = _build(story, f"Admission Form {data.application_id or ''}".strip())
    logger.info(f"Rendered admission form PDF for {data.application_id or 'unsaved application'}")
    return pdf


def render_payment_receipt_pdf(
    portal: PaymentPortalData,
    last_payment: PortalPaymentReceipt | None = None,
    today: datetime | None = None,
) -> bytes:
    """Render an existing student's payment receipt."""
    styles = _styles()
    today_text = (today or datetime.now(UTC)).strftime("%d/%m/%Y")

    story = _header(styles, "EXISTING STUDENT - PAYMENT RECEIPT")

    story.append(Paragraph("STUDENT INFORMATION", styles["SectionTitle"]))
    story.append(
        _fields(
            styles,
            [
                ("Student ID", portal.student_id),
                ("Student Name", portal.full_name),
                ("Email", portal.email),
                ("Phone", portal.phone),
                ("Admission Date", portal.admission_date),
                ("Academic Year", portal.academic_year),
            ],
        )
    )

    story.append(Paragraph("PROGRAM INFORMATION", styles["SectionTitle"]))
    story.append(
        _fields(
            styles,
            [
                ("Selected Program", portal.selected_program),
                ("Category", portal.program_category),
                ("Specialization", portal.specialization),
                ("Campus", portal.campus),
            ],
        )
    )

    total = portal.paid_amount + portal.remaining_amount
    progress = f"{portal.paid_amount / total * 100:.1f}%" if total > 0 else "0.0%"
    story.append(Paragraph("PAYMENT INFORMATION", styles["SectionTitle"]))
    story.append(
        _fields(
            styles,
            [
                ("Application Fee", _money(portal.application_fee)),
                ("Amount Paid", _money(portal.paid_amount)),
                ("Remaining Balance", _money(portal.remaining_amount)),
                ("Payment Progress", progress),
            ],
        )
    )

    if last_payment is not None:
        story.append(Paragraph("RECENT PAYMENT DETAILS", styles["SectionTitle"]))
        story.append(
            _fields(
                styles,
                [
                    ("Payment Amount", _money(last_payment.amount)),
                    ("Payment Type", f"{last_payment.payment_type.label} Payment"),
                    ("Transaction ID", last_payment.payment_id),
                    ("Order ID", last_payment.order_id),
                    ("Payment Date", last_payment.timestamp[:10]),
                ],
            )
        )

    if portal.payment_transactions:
        story.append(Paragraph("PAYMENT HISTORY", styles["SectionTitle"]))
        story.append(
            _grid(
                styles,
                ["Date", "Transaction ID", "Amount", "Status", "Description"],
                [
                    [
                        (txn.created_at or "")[:10],
                        txn.transaction_id,
                        _money(txn.amount),
                        txn.status,
                        txn.description,
                    ]
                    for txn in portal.payment_transactions
                ],
            )
        )

    story.append(Paragraph("IMPORTANT NOTES", styles["SectionTitle"]))
    official = f"This is an official payment receipt from {settings.institution_name}."
    story.extend(_bullets(styles, [official, *RECEIPT_NOTES]))

    story.append(Spacer(1, 6 * mm))
    story.append(_signature(styles, "Authorized Signature:", today_text))
    story.extend(_footer(styles))

    return _build(story, f"Payment Receipt {portal.student_id}")
