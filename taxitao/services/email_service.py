import logging
import httpx
from taxitao.core.config import Settings
from taxitao.services.email_templates import get_driver_email_template

logger = logging.getLogger(__name__)
settings = Settings()

RESEND_URL = "https://api.resend.com/emails"


class EmailNotConfigured(Exception):
    pass


class EmailProviderError(Exception):

    def __init__(self, status_code: int, details):
        super().__init__(f"Resend returned {status_code}")
        self.status_code = status_code
        self.details = details


async def send_email(
    to: str | list[str],
    subject: str,
    html: str,
    transport: httpx.AsyncBaseTransport | None = None
) -> dict:
    """
    Sends one email through Resend and returns the provider's response body.

    Raises ``EmailNotConfigured`` without an API key and
    ``EmailProviderError`` on a non-2xx answer.
    """
    if not settings.RESEND_API_KEY:
        logger.error("RESEND_API_KEY not configured")
        raise EmailNotConfigured()

    headers = {
        "Authorization": f"Bearer {settings.RESEND_API_KEY}",
        "Content-Type": "application/json",
    }
    payload = {
        "from": settings.EMAIL_FROM,
        "to": to,
        "subject": subject,
        "html": html,
    }

    async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
        response = await client.post(RESEND_URL, headers=headers, json=payload)

    if not response.is_success:
        try:
            details = response.json()
        except ValueError:
            details = response.text
        logger.error(f"Resend API error: {details}")
        raise EmailProviderError(response.status_code, details)

    return response.json()


async def send_driver_email(type: str, email: str, driver_name: str, transport=None, **data) -> bool:
    """Best effort: failures are logged and reported as False."""
    template = get_driver_email_template(type, driver_name, **data)
    if not template:
        logger.error(f"No template found for email type: {type}")
        return False

    try:
        await send_email(email, template.subject, template.html, transport=transport)
    except (EmailNotConfigured, EmailProviderError, httpx.HTTPError) as e:
        logger.error(f"Error sending {type} email to {email}: {e!r}")
        return False

    logger.info("Email %s sent to %s", type, email)
    return True
