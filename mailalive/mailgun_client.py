from typing import Optional

import httpx

from .config import MailgunSettings
from .errors import MailSendError
from .logging_setup import logger


def mailgun_send(settings: MailgunSettings, to_addr: str, subject: str, body: str, client: Optional[httpx.Client] = None) -> None:
    """POST one message to the Mailgun messages API. Anything but HTTP 200 is a failure."""
    url = f"{settings.api_base.rstrip('/')}/{settings.domain}/messages"
    data = {
        "from": f"Mailgun <mailgun@{settings.domain}>",
        "to": to_addr,
        "subject": subject,
        "text": body,
    }
    logger.debug(f"Mailgun POST {url} to={to_addr} subject={subject!r}")

    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=settings.timeout_seconds)
    try:
        resp = client.post(url, data=data, auth=("api", settings.api_key))
    except httpx.HTTPError as e:
        raise MailSendError(f"mailgun request failed: {e}") from e
    finally:
        if owns_client:
            client.close()

    if resp.status_code != 200:
        raise MailSendError(f"error sending mail: {resp.status_code} {resp.reason_phrase}", status_code=resp.status_code)
