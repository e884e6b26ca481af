"""
Email Service using Resend

Mail relay for the onboarding flow. Templates take a flat variables bag
(string keys and values) and are addressed by a template identifier, so the
form core never builds HTML itself.
"""

import asyncio
import logging
from collections.abc import Callable
from html import escape

import resend

from hauler_portal.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

TEMPLATE_APPLICATION_RECEIVED = "hauler_application_received"
TEMPLATE_STATUS_UPDATE = "hauler_status_update"

_BASE_STYLE = """
            body { font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }
            .container { max-width: 640px; margin: 0 auto; padding: 40px 20px; }
            .header { color: #14532d; margin-bottom: 24px; }
            .section { background-color: #f9fafb; border: 1px solid #e5e7eb; padding: 16px; border-radius: 8px; margin: 16px 0; }
            pre { white-space: pre-wrap; font-family: ui-monospace, monospace; font-size: 13px; }
            .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
"""


class UnknownTemplateError(KeyError):
    """Raised when a template identifier has no registered renderer."""


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if email was sent successfully
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


def _page(title: str, body: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>{_BASE_STYLE}</style>
    </head>
    <body>
        <div class="container">
            <h1 class="header">{title}</h1>
            {body}
            <div class="footer">
                <p>Hauler Onboarding Portal</p>
            </div>
        </div>
    </body>
    </html>
    """


def _render_application_received(v: dict[str, str]) -> tuple[str, str]:
    """Internal notification for a newly submitted hauler application."""
    business = ""
    if v.get("entity_type") == "business":
        business = f"""
                <li><strong>Business Name:</strong> {v.get("business_name", "")}</li>
                <li><strong>BEEE Level:</strong> {v.get("beee_level", "")}</li>
                <li><strong>CIPC Registration:</strong> {v.get("cipc_registration", "")}</li>"""

    body = f"""
            <p>Application <strong>{v.get("application_number", "")}</strong> was submitted on {v.get("submitted_at", "")}.</p>

            <div class="section">
                <p><strong>Applicant</strong></p>
                <ul>
                <li><strong>Full Name:</strong> {v.get("full_name", "")}</li>
                <li><strong>ID/Passport:</strong> {v.get("id_number", "")}</li>
                <li><strong>Entity Type:</strong> {v.get("entity_type", "")}</li>{business}
                <li><strong>Mobile:</strong> {v.get("mobile_number", "")}</li>
                <li><strong>Email:</strong> {v.get("email", "")}</li>
                <li><strong>Address:</strong> {v.get("physical_address", "")}</li>
                <li><strong>Province:</strong> {v.get("province", "")}</li>
                </ul>
            </div>

            <div class="section">
                <p><strong>Vehicles ({v.get("truck_count", "0")})</strong></p>
                <pre>{v.get("trucks_table", "")}</pre>
            </div>

            <div class="section">
                <p><strong>Banking</strong></p>
                <ul>
                <li><strong>Bank:</strong> {v.get("bank_name", "")}</li>
                <li><strong>Account Holder:</strong> {v.get("account_holder_name", "")}</li>
                <li><strong>Account Number:</strong> {v.get("account_number", "")}</li>
                <li><strong>Account Type:</strong> {v.get("account_type", "")}</li>
                <li><strong>Branch Code:</strong> {v.get("branch_code", "")}</li>
                </ul>
            </div>

            <div class="section">
                <p><strong>Documents ({v.get("document_count", "0")})</strong></p>
                <pre>{v.get("documents_summary", "")}</pre>
            </div>

            <p>Terms accepted: {v.get("accept_terms", "")} | Storage consent: {v.get("consent_to_store", "")} | Contact consent: {v.get("consent_to_contact", "")}</p>
    """
    subject = f"New Hauler Application - {v.get('full_name', '')} ({v.get('application_number', '')})"
    return subject, _page("New Hauler Application", body)


def _render_status_update(v: dict[str, str]) -> tuple[str, str]:
    """Applicant-facing notice that their application status changed."""
    notes = ""
    if v.get("notes"):
        notes = f'<div class="section"><p>{v["notes"]}</p></div>'

    body = f"""
            <p>Hello {v.get("full_name", "")},</p>

            <p>The status of your hauler application <strong>{v.get("application_number", "")}</strong> is now <strong>{v.get("status_label", "")}</strong>.</p>
            {notes}
            <p>If you have questions, reply to this email and quote your application number.</p>
    """
    subject = f"Your hauler application {v.get('application_number', '')}: {v.get('status_label', '')}"
    return subject, _page("Application Status Update", body)


TEMPLATES: dict[str, Callable[[dict[str, str]], tuple[str, str]]] = {
    TEMPLATE_APPLICATION_RECEIVED: _render_application_received,
    TEMPLATE_STATUS_UPDATE: _render_status_update,
}


def render_template(template_id: str, variables: dict[str, str]) -> tuple[str, str]:
    """
    Render a registered template into (subject, html).

    Every variable is HTML-escaped before it reaches the template.

    Raises:
        UnknownTemplateError: If template_id is not registered
    """
    renderer = TEMPLATES.get(template_id)
    if renderer is None:
        raise UnknownTemplateError(template_id)

    safe_variables = {key: escape(str(value)) for key, value in variables.items()}
    return renderer(safe_variables)


async def send_template_email(
    template_id: str,
    variables: dict[str, str],
    to_email: str | None = None,
) -> bool:
    """
    Render a template with a variables bag and relay it.

    Args:
        template_id: One of the TEMPLATE_* identifiers
        variables: Flat key/value bag
        to_email: Recipient, defaults to the applications inbox

    Returns:
        True if the relay accepted the message
    """
    subject, html_content = render_template(template_id, variables)
    return await send_email(
        to_email=to_email or settings.applications_inbox,
        subject=subject,
        html_content=html_content,
    )
