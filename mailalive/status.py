import re
from enum import Enum

from pydantic import BaseModel, ConfigDict

from .errors import MalformedSubjectError

# decimal integer with optional sign, nothing else (no whitespace, no underscores)
_TOKEN_RE = re.compile(r"[+-]?[0-9]+")


class StatusField(str, Enum):
    TIMESTAMP = "timestamp"
    DELAY = "delay"


class Status(BaseModel):
    """One observed probe outcome.

    timestamp: origination time embedded in the probe subject (unix seconds)
    delay: seconds between origination and server-recorded arrival, unclamped
    """

    model_config = ConfigDict(frozen=True)

    timestamp: float
    delay: float

    def value(self, field: StatusField) -> float:
        return _ACCESSORS[StatusField(field)](self)


_ACCESSORS = {
    StatusField.TIMESTAMP: lambda s: s.timestamp,
    StatusField.DELAY: lambda s: s.delay,
}


def format_subject(prefix: str, timestamp: int) -> str:
    return f"{prefix}{int(timestamp)}"


def parse_subject(prefix: str, subject: str) -> int:
    token = subject.removeprefix(prefix)
    if not _TOKEN_RE.fullmatch(token):
        raise MalformedSubjectError(subject)
    return int(token)
