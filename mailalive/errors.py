class ConfigError(Exception):
    """Raised when the configuration file cannot be read, parsed or validated. Fatal at startup."""
    pass


class MailSendError(Exception):
    """Raised when the probe message could not be handed to the outbound provider."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InboxError(Exception):
    """Base class for every failure while reconciling the probe inbox."""
    pass


class InboxConnectionError(InboxError):
    pass


class InboxAuthError(InboxError):
    pass


class NoMessagesError(InboxError):
    pass


class FetchError(InboxError):
    pass


class MalformedSubjectError(InboxError):
    """Raised when a subject is not '<prefix><integer>' (foreign or corrupted message)."""

    def __init__(self, subject: str):
        super().__init__(f"malformed probe subject: {subject!r}")
        self.subject = subject
