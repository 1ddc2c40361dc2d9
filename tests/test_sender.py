from __future__ import annotations

import base64
from urllib.parse import parse_qs

import httpx
import pytest

import mailalive.smtp_client as smtp_mod
from mailalive.errors import MailSendError
from mailalive.sender import PROBE_BODY, MailSender
from tests.helpers import make_config


def recording_client(status_code: int = 200) -> tuple[httpx.Client, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(status_code, json={"id": "<msg@mg>", "message": "Queued. Thank you."})

    return httpx.Client(transport=httpx.MockTransport(handler)), seen


def test_mailgun_probe_request_shape() -> None:
    client, seen = recording_client()
    sender = MailSender(make_config(), clock=lambda: 1700000000.7, http_client=client)

    subject = sender.send_probe()

    assert subject == "Alive check 1700000000"
    assert len(seen) == 1
    req = seen[0]
    assert req.method == "POST"
    assert str(req.url) == "https://api.eu.mailgun.net/v3/mg.example.test/messages"
    assert req.headers["content-type"] == "application/x-www-form-urlencoded"
    expected_auth = base64.b64encode(b"api:key-123").decode()
    assert req.headers["authorization"] == f"Basic {expected_auth}"
    form = parse_qs(req.content.decode())
    assert form == {
        "from": ["Mailgun <mailgun@mg.example.test>"],
        "to": ["alive@example.test"],
        "subject": ["Alive check 1700000000"],
        "text": [PROBE_BODY],
    }


def test_mailgun_custom_api_base() -> None:
    client, seen = recording_client()
    cfg = make_config(mailgun={"api_base": "https://api.mailgun.net/v3/"})

    MailSender(cfg, clock=lambda: 5, http_client=client).send_probe()

    assert str(seen[0].url) == "https://api.mailgun.net/v3/mg.example.test/messages"


@pytest.mark.parametrize("status_code", [201, 401, 500])
def test_mailgun_non_200_is_a_send_error(status_code: int) -> None:
    client, _ = recording_client(status_code)

    with pytest.raises(MailSendError) as excinfo:
        MailSender(make_config(), http_client=client).send_probe()

    assert excinfo.value.status_code == status_code


def test_mailgun_transport_error_is_a_send_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler))

    with pytest.raises(MailSendError):
        MailSender(make_config(), http_client=client).send_probe()


def test_smtp_backend_sends_probe(monkeypatch) -> None:
    sent: list[tuple[object, dict]] = []

    async def fake_send(message, **kwargs):
        sent.append((message, kwargs))
        return ({}, "OK")

    monkeypatch.setattr(smtp_mod.aiosmtplib, "send", fake_send)
    cfg = make_config(sender={"backend": "smtp"})

    subject = MailSender(cfg, clock=lambda: 1700000000).send_probe()

    assert subject == "Alive check 1700000000"
    message, kwargs = sent[0]
    assert message["Subject"] == "Alive check 1700000000"
    assert message["To"] == "alive@example.test"
    assert message["From"] == "probe@example.test"
    assert kwargs["hostname"] == "smtp.example.test"
    assert kwargs["port"] == 587
    assert kwargs["start_tls"] is True
    assert kwargs["use_tls"] is False
    assert kwargs["username"] == "probe@example.test"


def test_smtp_backend_failure_is_a_send_error(monkeypatch) -> None:
    async def fake_send(message, **kwargs):
        raise smtp_mod.smtp_errors.SMTPConnectError("cannot connect")

    monkeypatch.setattr(smtp_mod.aiosmtplib, "send", fake_send)
    cfg = make_config(sender={"backend": "smtp"})

    with pytest.raises(MailSendError):
        MailSender(cfg).send_probe()


def test_smtp_implicit_tls_on_465(monkeypatch) -> None:
    sent: list[dict] = []

    async def fake_send(message, **kwargs):
        sent.append(kwargs)

    monkeypatch.setattr(smtp_mod.aiosmtplib, "send", fake_send)
    cfg = make_config(sender={"backend": "smtp"}, smtp={"port": 465, "starttls": False})

    MailSender(cfg).send_probe()

    assert sent[0]["use_tls"] is True
    assert sent[0]["start_tls"] is False
