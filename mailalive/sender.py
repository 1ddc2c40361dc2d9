import time
from typing import Callable, Optional

import httpx

from .config import ExporterConfig
from .mailgun_client import mailgun_send
from .smtp_client import smtp_send_sync
from .status import format_subject
from .logging_setup import logger

PROBE_BODY = "This message is used to check end-to-end mail delivery."


class MailSender:
    """Sends one probe message per call through the configured backend (mailgun or smtp)."""

    def __init__(self, config: ExporterConfig, clock: Callable[[], float] = time.time, http_client: Optional[httpx.Client] = None):
        self.config = config
        self.clock = clock
        self.http_client = http_client

    @property
    def backend(self) -> str:
        return self.config.sender.backend

    def send_probe(self) -> str:
        """Send the probe and return its subject. Raises MailSendError on failure."""
        subject = format_subject(self.config.exporter.subject_prefix, int(self.clock()))
        to_addr = self.config.sender.to
        if self.backend == "smtp":
            smtp_send_sync(self.config.smtp, to_addr, subject, PROBE_BODY)
        else:
            mailgun_send(self.config.mailgun, to_addr, subject, PROBE_BODY, client=self.http_client)
        logger.info(f"probe sent via {self.backend} to={to_addr} subject={subject!r}")
        return subject
