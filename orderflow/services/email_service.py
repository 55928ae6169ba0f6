"""Email gateway using Resend for notification emails."""

import logging
from dataclasses import dataclass
from html import escape

import resend

from orderflow.core.config import get_settings
from orderflow.models.notification import NotificationRecord
from orderflow.models.order import OrderRecord
from orderflow.models.user import UserRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


def render_notification_email(
    notification: NotificationRecord,
    frontend_url: str,
    order: OrderRecord | None = None,
    customer: UserRecord | None = None,
) -> RenderedEmail:
    """Render the email for a persisted notification.

    Args:
        notification: Notification the email mirrors.
        frontend_url: Base URL of the frontend; the admin console link points here.
        order: Order the notification concerns, if any.
        customer: Owning user of the order, or the newly registered user.

    Returns:
        RenderedEmail: Subject, HTML and plain text bodies.
    """
    admin_url = f"{frontend_url.rstrip('/')}/admin"

    rows: list[tuple[str, str]] = []
    if order is not None:
        rows += [
            ("Order ID", order.id),
            ("Property", order.property_name),
            ("Room", order.room_number),
        ]
    if customer is not None:
        rows += [
            ("Company", customer.company_name),
            ("Store", customer.store_name),
        ]
    if order is not None:
        rows.append(("Contact person", order.contact_person))

    table_rows = "\n".join(
        f'            <tr><td style="padding: 6px 12px; color: #6b7280;">{escape(label)}</td>'
        f'<td style="padding: 6px 12px; font-weight: 600;">{escape(value or "-")}</td></tr>'
        for label, value in rows
    )

    html_content = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{escape(notification.title)}</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="font-size: 20px; margin-bottom: 10px;">{escape(notification.title)}</h1>
    <p style="font-size: 15px;">{escape(notification.message)}</p>

    <div style="background: #f9fafb; padding: 20px; border-radius: 10px; margin: 20px 0;">
        <table style="border-collapse: collapse; width: 100%;">
{table_rows}
        </table>
    </div>

    <div style="text-align: center; margin: 30px 0;">
        <a href="{admin_url}" style="background: #2563eb; color: white; padding: 12px 28px; text-decoration: none; border-radius: 6px; font-weight: 600;">
            Open admin console
        </a>
    </div>
</body>
</html>
"""

    text_lines = [notification.title, "", notification.message, ""]
    text_lines += [f"{label}: {value or '-'}" for label, value in rows]
    text_lines += ["", f"Admin console: {admin_url}"]

    return RenderedEmail(
        subject=f"[Orderflow] {notification.title}",
        html=html_content,
        text="\n".join(text_lines),
    )


class EmailGateway:
    """Sends transactional emails via Resend, one message per recipient."""

    def __init__(self) -> None:
        """Initialize email gateway with the Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.enabled = settings.email_enabled
        self.from_email = settings.email_from_address
        self.frontend_url = settings.frontend_url

    async def send(
        self,
        recipients: list[str],
        subject: str,
        html: str,
        text: str | None = None,
    ) -> int:
        """Send one email per recipient.

        A failure for one recipient is logged and does not stop the others.

        Args:
            recipients: Email addresses.
            subject: Subject line.
            html: HTML body.
            text: Optional plain text body.

        Returns:
            int: Number of emails accepted by Resend.
        """
        if not self.enabled:
            logger.warning("Email disabled (no RESEND_API_KEY); dropping '%s' for %d recipient(s)", subject, len(recipients))
            return 0

        sent = 0
        for to_email in recipients:
            params: dict[str, object] = {
                "from": self.from_email,
                "to": [to_email],
                "subject": subject,
                "html": html,
            }
            if text:
                params["text"] = text

            try:
                response = resend.Emails.send(params)
                logger.info("Notification email sent to %s, id: %s", to_email, response.get("id"))
                sent += 1
            except Exception as e:
                logger.error(
                    "Failed to send notification email to %s: %s",
                    to_email,
                    str(e),
                    extra={"recipient": to_email, "subject": subject},
                )
        return sent
