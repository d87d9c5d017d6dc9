import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from bunkerdesk.config import (
    MAIL_SERVER,
    MAIL_PORT,
    MAIL_USERNAME,
    MAIL_PASSWORD,
    MAIL_USE_TLS,
    MAIL_FROM_NAME,
    MAIL_FROM_EMAIL,
)
from bunkerdesk.utils.logging_utils import logger


def _build_message(subject: str, recipient: str, body: str, html: bool) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{MAIL_FROM_NAME} <{MAIL_FROM_EMAIL}>"
    msg["To"] = recipient
    msg.attach(MIMEText(body, "html" if html else "plain", "utf-8"))
    return msg


def send_email_sync(subject: str, recipient: str, body: str, html: bool = False) -> bool:
    """Send one message over SMTP. Returns False on SMTP failure."""
    msg = _build_message(subject, recipient, body, html)
    try:
        with smtplib.SMTP(MAIL_SERVER, MAIL_PORT, timeout=30) as server:
            if MAIL_USE_TLS:
                server.starttls()
            if MAIL_USERNAME:
                server.login(MAIL_USERNAME, MAIL_PASSWORD)
            server.send_message(msg)
        logger.info(f"[Email] Sent '{subject}' to {recipient}")
        return True
    except smtplib.SMTPAuthenticationError as e:
        logger.error(f"[Email] SMTP authentication failed: {e}")
        return False
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"[Email] Failed to send '{subject}' to {recipient}: {e}")
        return False


async def send_email(subject: str, recipient: str, body: str, html: bool = False) -> bool:
    return await asyncio.to_thread(send_email_sync, subject, recipient, body, html)
