"""
Tests du service d'envoi des codes OTP par SMTP (serveur simulé).
"""

import smtplib
from unittest.mock import MagicMock, patch

from app.services.email_service import _build_otp_message, send_otp_email


def test_message_contient_code():
    msg = _build_otp_message("alice@example.com", "482913", "Alice")
    assert msg["To"] == "alice@example.com"
    assert "482913" in msg["Subject"]
    plain = msg.get_payload()[0].get_payload(decode=True).decode()
    assert "482913" in plain
    assert "Hello Alice," in plain
    assert "5 minutes" in plain


def test_envoi_succes():
    server = MagicMock()
    with patch("app.services.email_service.smtplib.SMTP") as smtp:
        smtp.return_value.__enter__.return_value = server
        assert send_otp_email("alice@example.com", "482913") is True
    server.send_message.assert_called_once()


def test_envoi_echec_smtp_retourne_false():
    with patch("app.services.email_service.smtplib.SMTP") as smtp:
        smtp.return_value.__enter__.return_value.send_message.side_effect = smtplib.SMTPException("boom")
        assert send_otp_email("alice@example.com", "482913") is False


def test_serveur_injoignable_retourne_false():
    with patch("app.services.email_service.smtplib.SMTP", side_effect=ConnectionRefusedError()):
        assert send_otp_email("alice@example.com", "482913") is False
