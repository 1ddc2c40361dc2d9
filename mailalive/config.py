import os
import copy
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from dotenv import load_dotenv

from .errors import ConfigError

# Load .env early
load_dotenv()

DEFAULT_CONFIG_PATH = "config.yaml"

DEFAULTS: Dict[str, Any] = {
    "exporter": {
        "listen_addr": "0.0.0.0",
        "listen_port": 8080,
        "send_interval_seconds": 3600,
        "cache_flush_interval_seconds": 300,
        "subject_prefix": "Alive check ",
        "metrics_prefix": "mailalive_",
    },
    "sender": {
        "backend": "mailgun",
    },
    "mailgun": {
        "api_base": "https://api.eu.mailgun.net/v3",
        "timeout_seconds": 30,
    },
    "smtp": {
        "port": 587,
        "starttls": True,
        "timeout_seconds": 60,
    },
    "imap": {
        "port": 993,
        "ssl": True,
        "folder": "INBOX",
        "timeout_seconds": 60,
    },
}

API_KEY = os.environ.get("API_KEY")
METRICS_USER = os.environ.get("METRICS_USER")
METRICS_PASS = os.environ.get("METRICS_PASS")

APP_VERSION = os.environ.get("APP_VERSION", "0.1.0")
GIT_SHA = os.environ.get("GIT_SHA", "")
BUILD_DATE = os.environ.get("BUILD_DATE", "")


class ExporterSettings(BaseModel):
    listen_addr: str
    listen_port: int
    send_interval_seconds: float = Field(gt=0)
    cache_flush_interval_seconds: float = Field(gt=0)
    subject_prefix: str
    metrics_prefix: str = ""


class SenderSettings(BaseModel):
    backend: Literal["mailgun", "smtp"]
    to: str


class MailgunSettings(BaseModel):
    api_key: str = ""
    domain: str = ""
    api_base: str
    timeout_seconds: float = Field(gt=0)


class SMTPSettings(BaseModel):
    host: Optional[str] = None
    port: int
    starttls: bool
    username: Optional[str] = None
    password: Optional[str] = None
    from_addr: Optional[str] = Field(default=None, alias="from")
    timeout_seconds: float = Field(gt=0)


class IMAPSettings(BaseModel):
    host: str
    port: int
    ssl: bool
    username: str
    password: str
    folder: str
    timeout_seconds: float = Field(gt=0)


class ExporterConfig(BaseModel):
    exporter: ExporterSettings
    sender: SenderSettings
    mailgun: MailgunSettings
    smtp: SMTPSettings
    imap: IMAPSettings
    path: Optional[str] = None

    @classmethod
    def from_dict(cls, loaded: Dict[str, Any], path: Optional[str] = None) -> "ExporterConfig":
        data = copy.deepcopy(DEFAULTS)
        for k, v in (loaded or {}).items():
            if isinstance(v, dict) and k in data and isinstance(data[k], dict):
                data[k] = {**data[k], **v}
            else:
                data[k] = v
        data = _expand_env_value(data)
        data.pop("path", None)
        # accept mailgun.to as the recipient when sender.to is unset
        mailgun, sender = data.get("mailgun"), data.get("sender")
        mailgun_to = mailgun.pop("to", None) if isinstance(mailgun, dict) else None
        if mailgun_to and isinstance(sender, dict) and not sender.get("to"):
            sender["to"] = mailgun_to
        try:
            cfg = cls(**data, path=path)
        except ValidationError as e:
            raise ConfigError(f"invalid configuration{f' in {path}' if path else ''}: {e}") from e
        cfg._check_backend()
        return cfg

    @classmethod
    def load(cls, path: str) -> "ExporterConfig":
        try:
            with open(path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"cannot read config {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"cannot parse config {path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigError(f"config {path} must be a mapping at the top level")
        return cls.from_dict(loaded, path=path)

    def _check_backend(self) -> None:
        if self.sender.backend == "mailgun":
            if not (self.mailgun.api_key and self.mailgun.domain):
                raise ConfigError("mailgun backend requires mailgun.api_key and mailgun.domain")
        elif not (self.smtp.host and self.smtp.from_addr):
            raise ConfigError("smtp backend requires smtp.host and smtp.from")


def _expand_env_value(val: Any) -> Any:
    if isinstance(val, str):
        # expand ${VAR} and $VAR
        return os.path.expandvars(val)
    if isinstance(val, dict):
        return {k: _expand_env_value(v) for k, v in val.items()}
    if isinstance(val, list):
        return [_expand_env_value(v) for v in val]
    return val


def resolve_config_path(argv_path: Optional[str] = None) -> str:
    return argv_path or os.environ.get("CONFIG_PATH") or DEFAULT_CONFIG_PATH
