"""
Schémas Pydantic pour la configuration et la vérification 2FA.
"""

from typing import Optional

from app.schemas.user import CamelModel


class VerifySetupRequest(CamelModel):
    code: Optional[str] = None
    method: Optional[str] = None


class DisableRequest(CamelModel):
    password: Optional[str] = None


class SendOtpRequest(CamelModel):
    temp_token: Optional[str] = None


class VerifyChallengeRequest(CamelModel):
    temp_token: Optional[str] = None
    code: Optional[str] = None


class TwoFactorStatus(CamelModel):
    enabled: bool
    method: str


class TotpSetupResponse(CamelModel):
    qr_code: str  # data URI PNG
    manual_key: str  # secret base32, affiché une seule fois
    message: str


class MessageResponse(CamelModel):
    message: str
