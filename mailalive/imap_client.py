from datetime import datetime
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from typing import Any, Dict, List

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError, LoginError

from .config import IMAPSettings
from .errors import FetchError, InboxAuthError, InboxConnectionError, NoMessagesError
from .logging_setup import logger
from .metrics import ProbeMetrics
from .status import Status, parse_subject


def _decode_subject(raw: Any) -> str:
    if raw is None:
        return ""
    text = raw.decode("utf-8", "replace") if isinstance(raw, bytes) else str(raw)
    try:
        return str(make_header(decode_header(text)))
    except (HeaderParseError, LookupError, UnicodeDecodeError):
        return text


class InboxReconciler:
    """Resolves the current probe status from the inbox.

    Every call opens a fresh IMAP session, picks the newest message by
    arrival, removes every older message and returns the delay between the
    timestamp embedded in the subject and the server's INTERNALDATE.
    """

    def __init__(self, settings: IMAPSettings, subject_prefix: str, metrics: ProbeMetrics):
        self.settings = settings
        self.subject_prefix = subject_prefix
        self.metrics = metrics

    def _connect(self) -> IMAPClient:
        s = self.settings
        logger.debug(f"IMAP connect host={s.host} port={s.port} ssl={s.ssl} folder={s.folder}")
        try:
            client = IMAPClient(s.host, port=s.port, ssl=s.ssl, timeout=s.timeout_seconds)
        except (OSError, IMAPClientError) as e:
            raise InboxConnectionError(f"IMAP connect to {s.host}:{s.port} failed: {e}") from e
        # keep INTERNALDATE timezone-aware so the delay is independent of the local zone
        client.normalise_times = False
        return client

    def reconcile(self) -> Status:
        s = self.settings
        with self._connect() as client:
            try:
                client.login(s.username, s.password)
            except LoginError as e:
                raise InboxAuthError(f"IMAP login rejected for user='{s.username}' host='{s.host}': {e}") from e
            except (OSError, IMAPClientError) as e:
                raise InboxConnectionError(f"IMAP login failed for host='{s.host}': {e}") from e

            try:
                client.select_folder(s.folder)
                uids = self._uids_newest_first(client)
                if not uids:
                    raise NoMessagesError(f"no messages found in '{s.folder}'")
                if len(uids) > 1:
                    self._delete(client, uids[1:])
                return self._status_of(client, uids[0])
            except (OSError, IMAPClientError) as e:
                raise FetchError(f"IMAP operation failed in '{s.folder}': {e}") from e

    def _uids_newest_first(self, client: IMAPClient) -> List[int]:
        if client.has_capability("SORT"):
            return list(client.sort(["REVERSE", "ARRIVAL"]))
        # no server-side SORT: order by INTERNALDATE locally
        uids = list(client.search("ALL"))
        if not uids:
            return []
        fetched = client.fetch(uids, ["INTERNALDATE"])

        def arrival(uid: int) -> float:
            when = (fetched.get(uid) or {}).get(b"INTERNALDATE")
            return when.timestamp() if isinstance(when, datetime) else 0.0

        return sorted(uids, key=lambda uid: (arrival(uid), uid), reverse=True)

    def _delete(self, client: IMAPClient, stale: List[int]) -> None:
        logger.info(f"deleting {len(stale)} message(s) from '{self.settings.folder}'")
        client.add_flags(stale, ["\\Deleted"])  # escape backslash
        client.expunge()
        self.metrics.deletions.inc(len(stale))

    def _status_of(self, client: IMAPClient, uid: int) -> Status:
        fetched: Dict[int, Dict[bytes, Any]] = client.fetch([uid], ["ENVELOPE", "INTERNALDATE"])
        data = fetched.get(uid)
        if not data:
            raise FetchError(f"couldn't fetch message uid={uid}")
        envelope = data.get(b"ENVELOPE")
        arrival = data.get(b"INTERNALDATE")
        if envelope is None or not isinstance(arrival, datetime):
            raise FetchError(f"message uid={uid} is missing ENVELOPE or INTERNALDATE")

        subject = _decode_subject(envelope.subject)
        sent_at = parse_subject(self.subject_prefix, subject)
        delay = arrival.timestamp() - sent_at
        logger.debug(f"IMAP newest uid={uid} subject={subject!r} delay={delay:.0f}s")
        return Status(timestamp=float(sent_at), delay=delay)
