"""
Schémas Pydantic pour le profil de risque de l'utilisateur.
"""

from typing import List, Optional

from app.schemas.user import CamelModel, RiskProfile


class RiskProfileUpdate(CamelModel):
    age: Optional[str] = None
    conditions: Optional[List[str]] = None
    allergies: Optional[List[str]] = None


class RiskProfileResponse(CamelModel):
    risk_profile: Optional[RiskProfile] = None
