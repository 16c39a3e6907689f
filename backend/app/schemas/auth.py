"""
Schémas Pydantic pour l'inscription et la connexion.

Les champs des requêtes sont optionnels au niveau du schéma : l'absence d'un champ
est signalée par le service avec le code MISSING_FIELDS (et non un 422 générique).
"""

from typing import Optional

from pydantic import Field

from app.schemas.user import CamelModel, UserPublic


class RegisterRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthSession(CamelModel):
    """Jeton de session + projection publique de l'utilisateur."""
    token: str
    user: UserPublic


class TwoFactorChallenge(CamelModel):
    """Réponse de connexion quand un second facteur est requis (aucun jeton de session)."""
    requires_2fa: bool = Field(default=True, alias="requires2FA")
    method: str
    temp_token: str
