# /tests/test_contact.py
from __future__ import annotations

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

import config
import main
from dependencies import get_pgp_mailer_factory
from models import ContactRequest
from routers.contact import compose_message, format_timestamp, subject_preview
from services.pgp_mailer import MailResult, PGPMailerError


class RecordingMailer:
    def __init__(self, result=None, encrypt_error=None):
        self.result = result or MailResult(success=True, http_code=200, response={"id": "email-1"})
        self.encrypt_error = encrypt_error
        self.encrypted = []
        self.sent = []

    async def encrypt_message(self, message):
        if self.encrypt_error is not None:
            raise self.encrypt_error
        self.encrypted.append(message)
        return "-----BEGIN PGP MESSAGE-----"

    async def send_encrypted_email(self, sender, recipient, subject, encrypted_content, session=None):
        self.sent.append((sender, recipient, subject, encrypted_content))
        return self.result


@pytest.fixture
def mailer():
    fake = RecordingMailer()
    main.app.dependency_overrides[get_pgp_mailer_factory] = lambda: (lambda: fake)
    yield fake
    main.app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(main.app)


# --------------------------------------------------------------------------
# Message formatting
# --------------------------------------------------------------------------
def test_format_timestamp():
    assert format_timestamp(datetime(2024, 1, 15, 14, 5, 9)) == "1/15/2024, 2:05:09 PM"
    assert format_timestamp(datetime(2024, 11, 3, 0, 30, 0)) == "11/3/2024, 12:30:00 AM"
    assert format_timestamp(datetime(2024, 11, 3, 12, 0, 0)) == "11/3/2024, 12:00:00 PM"


def test_subject_preview_collapses_whitespace_and_truncates():
    assert subject_preview("  hello\n\n  there ") == "hello there"
    preview = subject_preview("x" * 80)
    assert preview == "x" * 47 + "..."
    assert len(preview) == 50
    assert subject_preview("y" * 50) == "y" * 50


def test_compose_message_includes_response_details():
    req = ContactRequest(message="Need help", responseType="signal_username", signalUsername="sam.42")
    text = compose_message(req, now=datetime(2024, 1, 15, 14, 5, 9))
    assert text == (
        "ActivistChecklist.org Contact Form\n\n"
        "## Message received:\n1/15/2024, 2:05:09 PM\n\n"
        "## Response requested by Signal username:\nsam.42\n\n"
        "## Message:\nNeed help"
    )


def test_compose_message_without_response():
    req = ContactRequest(message="Thanks", responseType="none")
    assert "## No response requested" in compose_message(req)


# --------------------------------------------------------------------------
# Route
# --------------------------------------------------------------------------
def test_contact_encrypts_and_sends(client, mailer):
    resp = client.post("/api-server/contact", json={
        "message": "Hello\nthere",
        "responseType": "email",
        "email": "someone@example.org",
    })

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Message sent successfully"}
    assert "## Response requested by email:\nsomeone@example.org" in mailer.encrypted[0]
    sender, recipient, subject, content = mailer.sent[0]
    assert (sender, recipient) == (config.CONTACT_FROM, config.CONTACT_TO)
    assert subject == "Contact Form: Hello there"
    assert content == "-----BEGIN PGP MESSAGE-----"


@pytest.mark.parametrize("body", [
    {"responseType": "none"},
    {"message": "", "responseType": "none"},
    {"message": "x" * 5001, "responseType": "none"},
    {"message": "hi", "responseType": "carrier_pigeon"},
    {"message": "hi", "responseType": "email"},
    {"message": "hi", "responseType": "email", "email": "not-an-address"},
    {"message": "hi", "responseType": "signal_username", "signalUsername": "sam"},
    {"message": "hi", "responseType": "signal_phone"},
])
def test_contact_rejects_invalid_bodies(client, mailer, body):
    assert client.post("/api-server/contact", json=body).status_code == 422
    assert mailer.sent == []


def test_contact_rejects_oversized_body(client, mailer):
    resp = client.post("/api-server/contact", json={"message": "x" * 11000, "responseType": "none"})
    assert resp.status_code == 413
    assert mailer.encrypted == []


def test_contact_reports_encryption_failure(client, mailer):
    mailer.encrypt_error = PGPMailerError("PGP public key file not found at: /nowhere.asc")
    resp = client.post("/api-server/contact", json={"message": "hi", "responseType": "none"})

    assert resp.status_code == 500
    assert resp.json()["detail"]["error"] == "Encryption Error"
    assert mailer.sent == []


def test_contact_passes_through_resend_status(client, mailer):
    mailer.result = MailResult(success=False, http_code=403, response={"error": "domain not verified"})
    resp = client.post("/api-server/contact", json={"message": "hi", "responseType": "none"})

    assert resp.status_code == 403
    assert resp.json()["detail"] == {
        "error": "Email Service Error",
        "message": "Failed to send encrypted email",
        "details": "domain not verified",
    }


def test_contact_unconfigured_mailer(client, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(config, "RESEND_API_KEY", "")
    resp = client.post("/api-server/contact", json={"message": "hi", "responseType": "none"})
    assert resp.status_code == 500
    assert resp.json()["detail"]["error"] == "Server Error"
