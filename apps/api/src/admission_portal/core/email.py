"""
Email Service using Resend

Sends applicant notifications: the application confirmation after a
verified new-applicant payment and the receipt for existing-student
payments. Email failures are logged and never fail the payment flow.
"""

import asyncio
import logging
from html import escape

import resend

from admission_portal.core.config import settings
from admission_portal.core.money import format_inr

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

_BASE_STYLE = """
    body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
    .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
    .header { color: #1e3a8a; margin-bottom: 24px; }
    .summary { background-color: #f3f4f6; border-radius: 8px; padding: 16px 20px; margin: 24px 0; }
    .summary td { padding: 4px 12px 4px 0; }
    .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
"""


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Returns:
        True if the email was sent (or logged when no API key is set)
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Resend's client is synchronous
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


def _render(title: str, greeting_name: str, intro: str, rows: list[tuple[str, str]]) -> str:
    summary_rows = "\n".join(
        f"<tr><td><strong>{escape(label)}</strong></td><td>{escape(value)}</td></tr>"
        for label, value in rows
    )
    institution = escape(settings.institution_name)
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>{_BASE_STYLE}</style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{escape(title)}</h1>

            <p>Hello {escape(greeting_name)},</p>

            <p>{intro}</p>

            <table class="summary">
                {summary_rows}
            </table>

            <div class="footer">
                <p>Please keep this email for your records.</p>
                <p>{institution} - Admissions Office</p>
            </div>
        </div>
    </body>
    </html>
    """


async def send_application_confirmation(
    to_email: str,
    applicant_name: str,
    application_id: str,
    program_name: str,
    amount: float,
    payment_id: str,
) -> bool:
    """Send the confirmation email after a new application is paid."""
    html_content = _render(
        title="Application Submitted",
        greeting_name=applicant_name,
        intro=(
            "Thank you for applying. Your payment was received and your "
            "application has been submitted for review."
        ),
        rows=[
            ("Application ID", application_id),
            ("Program", program_name or "-"),
            ("Amount Paid", format_inr(amount)),
            ("Payment Reference", payment_id),
        ],
    )
    return await send_email(
        to_email=to_email,
        subject=f"Application {escape(application_id)} submitted",
        html_content=html_content,
    )


async def send_payment_receipt(
    to_email: str,
    student_name: str,
    amount: float,
    remaining_amount: float,
    payment_id: str,
    order_id: str,
) -> bool:
    """Send a receipt for an existing-student fee payment."""
    html_content = _render(
        title="Payment Received",
        greeting_name=student_name,
        intro="We have received your fee payment. A summary is below.",
        rows=[
            ("Amount Paid", format_inr(amount)),
            ("Remaining Balance", format_inr(remaining_amount)),
            ("Payment Reference", payment_id),
            ("Order Reference", order_id),
        ],
    )
    return await send_email(
        to_email=to_email,
        subject="Payment receipt",
        html_content=html_content,
    )
