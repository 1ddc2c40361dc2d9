from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from mailalive.config import ExporterConfig


def make_config(**overrides: Any) -> ExporterConfig:
    data: dict[str, Any] = {
        "sender": {"backend": "mailgun", "to": "alive@example.test"},
        "mailgun": {"api_key": "key-123", "domain": "mg.example.test"},
        "smtp": {"host": "smtp.example.test", "from": "probe@example.test", "username": "probe@example.test", "password": "secret"},
        "imap": {"host": "imap.example.test", "username": "alive@example.test", "password": "secret"},
    }
    for section, values in overrides.items():
        data[section] = {**data.get(section, {}), **values}
    return ExporterConfig.from_dict(data)


def utc(ts: int) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)
