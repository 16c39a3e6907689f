"""
Router d'authentification.
POST /api/auth/register : inscription
POST /api/auth/login    : connexion (session directe ou défi 2FA)
GET  /api/auth/me       : utilisateur courant
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.errors import success
from app.schemas.auth import LoginRequest, RegisterRequest
from app.schemas.user import UserPublic
from app.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["Authentification"])


@router.post("/register", status_code=201, summary="Créer un compte")
def register(data: Optional[RegisterRequest] = None, db: Session = Depends(get_db)):
    """
    Crée un compte utilisateur et retourne un jeton de session.
    Mot de passe : 8 caractères minimum. Email unique (insensible à la casse).
    """
    session = auth_service.register(db, data or RegisterRequest())
    return success(session.model_dump(mode="json", by_alias=True))


@router.post("/login", summary="Se connecter")
def login(data: Optional[LoginRequest] = None, db: Session = Depends(get_db)):
    """
    Vérifie email et mot de passe.

    - 2FA désactivée : retourne `token` + `user`
    - 2FA activée : retourne `requires2FA`, `method` et `tempToken` (valable 5 minutes),
      à échanger via POST /api/2fa/verify. En méthode email, le code est envoyé immédiatement.
    """
    result = auth_service.login(db, data or LoginRequest())
    return success(result.model_dump(mode="json", by_alias=True))


@router.get("/me", summary="Utilisateur courant")
def me(user: UserPublic = Depends(get_current_user)):
    """Retourne la projection publique de l'utilisateur authentifié."""
    return success({"user": user.to_json()})
