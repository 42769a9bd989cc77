import asyncio
import logging

import resend

from app.core.config import settings
from app.core.exceptions import NotifierError

logger = logging.getLogger(__name__)

# Initialize Resend once
resend.api_key = settings.RESEND_API_KEY


async def send_email(to_email: str, subject: str, html: str) -> None:
    """
    Sends email using Resend (HTTP-based).

    The blocking SDK call runs in a worker thread and is bounded by
    EMAIL_SEND_TIMEOUT_SECONDS. Any failure surfaces as NotifierError.
    """
    payload = {
        "from": settings.EMAIL_FROM,   # SYSTEM EMAIL
        "to": to_email,                # USER EMAIL
        "subject": subject,
        "html": html,
    }

    try:
        await asyncio.wait_for(
            asyncio.to_thread(resend.Emails.send, payload),
            timeout=settings.EMAIL_SEND_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError as e:
        logger.warning(f"Email to {to_email} timed out after {settings.EMAIL_SEND_TIMEOUT_SECONDS}s")
        raise NotifierError("Email delivery timed out") from e
    except Exception as e:
        logger.warning(f"Email sending failed for {to_email}: {e}")
        raise NotifierError() from e
