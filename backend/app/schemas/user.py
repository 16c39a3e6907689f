"""
Projections Pydantic d'un utilisateur.

Deux lectures distinctes :
- UserPublic : ce que l'API peut renvoyer (jamais de hash, secret ou OTP)
- UserCredentials : lecture explicite « avec secrets », réservée aux opérations
  qui doivent comparer un mot de passe ou un code

Les champs sont exposés en camelCase sur le réseau (riskProfile, ...).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TWO_FACTOR_METHODS = {"email", "totp"}


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RiskProfile(CamelModel):
    age: str
    conditions: List[str] = []
    allergies: List[str] = []


class UserPublic(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    role: str = "user"
    risk_profile: Optional[RiskProfile] = None

    # Lus en interne (statut 2FA), absents de la projection renvoyée au client
    two_factor_enabled: bool = Field(default=False, exclude=True)
    two_factor_method: str = Field(default="none", exclude=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class UserCredentials(UserPublic):
    """Utilisateur chargé avec ses champs sensibles. Ne jamais sérialiser vers le client."""

    password_hash: str = Field(exclude=True)
    two_factor_secret_encrypted: Optional[str] = Field(default=None, exclude=True)
    email_otp_code: Optional[str] = Field(default=None, exclude=True)
    email_otp_expires_at: Optional[datetime] = Field(default=None, exclude=True)

    def to_public(self) -> UserPublic:
        return UserPublic(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role,
            risk_profile=self.risk_profile,
            two_factor_enabled=self.two_factor_enabled,
            two_factor_method=self.two_factor_method,
        )
