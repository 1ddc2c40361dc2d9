import asyncio
from email.message import EmailMessage

import aiosmtplib
from aiosmtplib import errors as smtp_errors

from .config import SMTPSettings
from .errors import MailSendError
from .logging_setup import logger


async def smtp_send(settings: SMTPSettings, to_addr: str, subject: str, body: str) -> None:
    """Submit the probe message over SMTP. Single attempt; every failure becomes MailSendError."""
    port = int(settings.port)
    starttls = bool(settings.starttls)
    use_tls = (not starttls) and port == 465

    if settings.username and not settings.password:
        raise MailSendError(f"SMTP password empty for user={settings.username} host={settings.host}")

    message = EmailMessage()
    message["From"] = settings.from_addr
    message["To"] = to_addr
    message["Subject"] = subject
    message.set_content(body, subtype="plain", charset="utf-8")

    logger.debug(f"SMTP connect host={settings.host} port={port} starttls={starttls} use_tls={use_tls}")
    try:
        await aiosmtplib.send(
            message,
            hostname=settings.host,
            port=port,
            start_tls=starttls,
            use_tls=use_tls,
            username=settings.username or None,
            password=settings.password or None,
            timeout=settings.timeout_seconds,
        )
    except (smtp_errors.SMTPException, OSError, TimeoutError) as e:
        raise MailSendError(f"SMTP send failed host={settings.host} port={port}: {e}") from e


def smtp_send_sync(settings: SMTPSettings, to_addr: str, subject: str, body: str) -> None:
    # the send loop runs in its own thread; a short-lived event loop per call keeps it simple
    asyncio.run(smtp_send(settings, to_addr, subject, body))
