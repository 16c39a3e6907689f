"""
Service du profil de risque (âge, pathologies, allergies) utilisé par l'analyse d'interactions.
"""

from sqlalchemy.orm import Session

from app import errors
from app.errors import ApiError
from app.schemas.profile import RiskProfileResponse, RiskProfileUpdate
from app.schemas.user import RiskProfile, UserPublic
from app.services import user_store


def get_profile(user: UserPublic) -> RiskProfileResponse:
    return RiskProfileResponse(risk_profile=user.risk_profile)


def update_profile(db: Session, user: UserPublic, data: RiskProfileUpdate) -> RiskProfileResponse:
    """Crée ou remplace le profil de risque. L'âge est obligatoire, les listes vides par défaut."""
    if not data.age or not data.age.strip():
        raise ApiError(errors.MISSING_FIELDS, "Age range is required.")

    profile = RiskProfile(
        age=data.age.strip(),
        conditions=[c.strip() for c in (data.conditions or []) if c.strip()],
        allergies=[a.strip() for a in (data.allergies or []) if a.strip()],
    )
    updated = user_store.update_user(db, user.id, risk_profile=profile.model_dump())
    if updated is None:
        raise ApiError(errors.USER_NOT_FOUND, "User not found.")
    return RiskProfileResponse(risk_profile=updated.risk_profile)
