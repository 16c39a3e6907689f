"""
Router du profil de risque.
GET /api/profile : lire le profil
PUT /api/profile : créer ou remplacer le profil
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.errors import success
from app.schemas.profile import RiskProfileUpdate
from app.schemas.user import UserPublic
from app.services import profile_service

router = APIRouter(prefix="/api/profile", tags=["Profil"])


@router.get("", summary="Lire le profil de risque")
def get_profile(user: UserPublic = Depends(get_current_user)):
    return success(profile_service.get_profile(user).model_dump(mode="json", by_alias=True))


@router.put("", summary="Mettre à jour le profil de risque")
def update_profile(
    data: Optional[RiskProfileUpdate] = None,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """`age` obligatoire ; `conditions` et `allergies` sont des listes (vides par défaut)."""
    profile = profile_service.update_profile(db, user, data or RiskProfileUpdate())
    return success(profile.model_dump(mode="json", by_alias=True))
