"""
Taxonomie des erreurs de l'API et format d'enveloppe des réponses.

Toutes les réponses suivent la forme :
  {"success": true, "data": {...}}
  {"success": false, "error": {"code": "...", "message": "..."}}

Les services lèvent ApiError ; le handler enregistré dans main.py la convertit
en réponse JSON. Le code est stable (branche côté client), le message est lisible.
"""

from typing import Any, Optional

# Validation
MISSING_FIELDS = "MISSING_FIELDS"
WEAK_PASSWORD = "WEAK_PASSWORD"
VALIDATION_ERROR = "VALIDATION_ERROR"

# Conflit
EMAIL_EXISTS = "EMAIL_EXISTS"

# Authentification
INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
INVALID_PASSWORD = "INVALID_PASSWORD"
NO_TOKEN = "NO_TOKEN"
INVALID_TOKEN = "INVALID_TOKEN"
TOKEN_EXPIRED = "TOKEN_EXPIRED"
USER_NOT_FOUND = "USER_NOT_FOUND"

# 2FA
NO_SECRET = "NO_SECRET"
NO_OTP = "NO_OTP"
OTP_EXPIRED = "OTP_EXPIRED"
INVALID_CODE = "INVALID_CODE"
INVALID_METHOD = "INVALID_METHOD"
RATE_LIMITED = "RATE_LIMITED"

# Dépendances externes
EMAIL_FAILED = "EMAIL_FAILED"

# Requête
PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"

# Inattendu
SERVER_ERROR = "SERVER_ERROR"

_DEFAULT_STATUS = {
    MISSING_FIELDS: 400,
    WEAK_PASSWORD: 400,
    VALIDATION_ERROR: 400,
    EMAIL_EXISTS: 409,
    INVALID_CREDENTIALS: 401,
    INVALID_PASSWORD: 401,
    NO_TOKEN: 401,
    INVALID_TOKEN: 401,
    TOKEN_EXPIRED: 401,
    USER_NOT_FOUND: 404,
    NO_SECRET: 400,
    NO_OTP: 400,
    OTP_EXPIRED: 400,
    INVALID_CODE: 400,
    INVALID_METHOD: 400,
    RATE_LIMITED: 429,
    EMAIL_FAILED: 500,
    PAYLOAD_TOO_LARGE: 413,
    SERVER_ERROR: 500,
}


class ApiError(Exception):
    """Erreur métier destinée au client : code stable + message + statut HTTP."""

    def __init__(self, code: str, message: str, status_code: Optional[int] = None) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code or _DEFAULT_STATUS.get(code, 400)
        super().__init__(f"[{code}] {message}")


def success(data: Any) -> dict:
    """Enveloppe de succès."""
    return {"success": True, "data": data}


def failure(code: str, message: str) -> dict:
    """Enveloppe d'échec."""
    return {"success": False, "error": {"code": code, "message": message}}
