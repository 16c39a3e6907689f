"""
Codes OTP envoyés par email : 6 chiffres, valables 5 minutes.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

EMAIL_OTP_TTL = timedelta(minutes=5)


def utcnow() -> datetime:
    """Horodatage UTC naïf, cohérent avec les colonnes DateTime de la base."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_email_otp() -> str:
    """Code uniforme dans [100000, 999999], tiré d'une source cryptographique."""
    return str(100000 + secrets.randbelow(900000))


def otp_expiry(now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) + EMAIL_OTP_TTL
