import requests
from app.core.config import settings
import logging

logger = logging.getLogger("uvicorn.error")

SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"


def send_email(to_email: str, subject: str, html_content: str) -> bool:
    """Send one email through the SendGrid API.

    Returns True when SendGrid accepted it (200/202), False otherwise.
    """
    api_key = settings.sendgrid_api_key
    if not api_key:
        logger.warning("SendGrid API key not configured; skipping email.")
        return False

    from_email = settings.sendgrid_from_email or settings.notification_email or "no-reply@threadscape.com"

    payload = {
        "personalizations": [
            {
                "to": [{"email": to_email}],
                "subject": subject,
            }
        ],
        "from": {"email": from_email, "name": "Threadscape"},
        "content": [
            {"type": "text/html", "value": html_content}
        ]
    }

    if settings.sendgrid_sandbox_mode:
        payload["mail_settings"] = {"sandbox_mode": {"enable": True}}

    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json"
    }

    try:
        resp = requests.post(SENDGRID_API_URL, json=payload, headers=headers, timeout=10)
    except requests.RequestException as e:
        logger.error(f"Exception sending email through SendGrid: {e}")
        return False
    if resp.status_code in (200, 202):
        logger.info(f"Email '{subject}' sent to {to_email}")
        return True
    logger.error(f"SendGrid error: {resp.status_code} {resp.text}")
    return False


def send_order_notification(order) -> bool:
    """Tell the store owner about a newly placed order."""
    recipient = settings.notification_email
    if not recipient:
        return False

    buyer = order.user
    items_html = "<ul>"
    for item in order.order_items:
        items_html += (
            f"<li>{item.product.name} x {item.quantity} "
            f"@ ${float(item.price):.2f}</li>"
        )
    items_html += "</ul>"

    subject = f"New Threadscape order #{order.id} - Total: ${float(order.total):.2f}"
    html = (
        f"<p>Customer: <strong>{buyer.first_name} {buyer.last_name}</strong> ({buyer.email})</p>"
        f"<p>Order total: <strong>${float(order.total):.2f}</strong></p>"
        f"<h4>Items:</h4>{items_html}"
    )
    return send_email(recipient, subject, html)
