"""
Moteur TOTP (RFC 6238) pour les applications d'authentification.

Paramètres fixes : SHA1, 6 chiffres, période 30 s ; toute variation casse
l'interopérabilité avec Google Authenticator, Authy, etc.
Vérification : pas courant ± 1 pas (dérive d'horloge).
"""

import base64
import hashlib
import io
import time
from dataclasses import dataclass
from typing import Optional

import pyotp
import qrcode

from app.config import settings

TOTP_DIGITS = 6
TOTP_INTERVAL = 30
TOTP_DRIFT_STEPS = 1


@dataclass
class TotpEnrollment:
    secret: str  # base32, 160 bits
    uri: str  # otpauth://totp/...


def _totp(secret: str) -> pyotp.TOTP:
    return pyotp.TOTP(
        secret,
        digits=TOTP_DIGITS,
        interval=TOTP_INTERVAL,
        digest=hashlib.sha1,
        issuer=settings.TOTP_ISSUER,
    )


def generate_secret(account_label: str) -> TotpEnrollment:
    """Génère un secret aléatoire et l'URI d'enrôlement otpauth:// associée."""
    secret = pyotp.random_base32()
    uri = _totp(secret).provisioning_uri(name=account_label)
    return TotpEnrollment(secret=secret, uri=uri)


def verify_code(secret: str, code: str, for_time: Optional[float] = None) -> bool:
    """Accepte le code s'il correspond au pas courant, précédent ou suivant."""
    if not code or len(code) != TOTP_DIGITS or not code.isdigit():
        return False
    at = time.time() if for_time is None else for_time
    return _totp(secret).verify(code, for_time=at, valid_window=TOTP_DRIFT_STEPS)


def code_at(secret: str, for_time: float) -> str:
    """Code attendu à un instant donné (utilisé par les tests et les scripts de démo)."""
    return _totp(secret).at(for_time)


def render_qr_data_uri(uri: str) -> str:
    """Encode l'URI d'enrôlement en QR code PNG, retourné en data URI base64."""
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(uri)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
