"""
Service d'envoi d'emails SMTP.
Utilisé pour l'envoi des codes de vérification 2FA (configuration et connexion).
"""

import logging
import smtplib
from datetime import date
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from app.config import settings

logger = logging.getLogger(__name__)


def _build_otp_message(to_email: str, code: str, display_name: Optional[str]) -> MIMEMultipart:
    msg = MIMEMultipart("alternative")
    msg["From"] = settings.SMTP_FROM
    msg["To"] = to_email
    msg["Subject"] = f"{code} — Your SafeMed AI verification code"

    greeting = f"Hello {display_name}," if display_name else "Hello,"
    text_content = (
        f"{greeting}\n\n"
        f"Your verification code for two-factor authentication is: {code}\n\n"
        "This code expires in 5 minutes. If you didn't request it, please ignore this email.\n"
    )
    html_content = f"""
    <html>
      <body style="font-family: Arial, sans-serif; color: #334155; max-width: 420px; margin: auto;">
        <h2 style="color: #059669;">SafeMed AI</h2>
        <p>{greeting}</p>
        <p>Your verification code for two-factor authentication is:</p>
        <div style="background: #f0fdf4; border: 2px solid #86efac; border-radius: 12px;
                    padding: 20px; text-align: center; margin: 24px 0;">
          <span style="font-size: 36px; font-weight: 700; letter-spacing: 8px; color: #059669;">{code}</span>
        </div>
        <p style="font-size: 13px; color: #94a3b8;">
          This code expires in <strong>5 minutes</strong>. If you didn't request this, please ignore this email.
        </p>
        <hr style="border: none; border-top: 1px solid #eee;" />
        <p style="font-size: 11px; color: #94a3b8;">
          © {date.today().year} SafeMed AI — Your Medication Safety Assistant
        </p>
      </body>
    </html>
    """

    msg.attach(MIMEText(text_content, "plain", "utf-8"))
    msg.attach(MIMEText(html_content, "html", "utf-8"))
    return msg


def send_otp_email(to_email: str, code: str, display_name: Optional[str] = None) -> bool:
    """
    Envoie le code OTP par email.
    Ne lève jamais : retourne False si l'envoi échoue (l'appelant décide du code d'erreur).
    """
    msg = _build_otp_message(to_email, code, display_name)
    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS) as server:
            if settings.SMTP_USE_TLS:
                server.starttls()
            if settings.SMTP_USERNAME:
                server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Échec de l'envoi du code OTP à %s : %s", to_email, exc)
        return False

    logger.info("Code OTP envoyé à %s", to_email)
    return True
