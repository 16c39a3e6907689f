"""
Router de l'authentification à deux facteurs.

Configuration (jeton de session requis) :
  GET  /api/2fa/status, POST /api/2fa/setup/email, POST /api/2fa/setup/totp,
  POST /api/2fa/verify-setup, POST /api/2fa/disable
Défi de connexion (jeton temporaire dans le body, pas d'en-tête) :
  POST /api/2fa/send-otp, POST /api/2fa/verify
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.errors import success
from app.schemas.two_factor import (
    DisableRequest,
    SendOtpRequest,
    VerifyChallengeRequest,
    VerifySetupRequest,
)
from app.schemas.user import UserPublic
from app.services import two_factor_service

router = APIRouter(prefix="/api/2fa", tags=["Double authentification"])


def _dump(model) -> dict:
    return model.model_dump(mode="json", by_alias=True)


@router.get("/status", summary="Statut 2FA")
def status(user: UserPublic = Depends(get_current_user)):
    return success(_dump(two_factor_service.get_status(user)))


@router.post("/setup/email", summary="Configurer la 2FA par email")
def setup_email(user: UserPublic = Depends(get_current_user), db: Session = Depends(get_db)):
    """Envoie un code à 6 chiffres (valable 5 minutes) à confirmer via /verify-setup."""
    return success(_dump(two_factor_service.setup_email(db, user)))


@router.post("/setup/totp", summary="Configurer une application d'authentification")
def setup_totp(user: UserPublic = Depends(get_current_user), db: Session = Depends(get_db)):
    """
    Génère un nouveau secret TOTP.
    Retourne `qrCode` (data URI PNG à scanner) et `manualKey` (saisie manuelle, affichée une seule fois).
    La 2FA n'est active qu'après confirmation via /verify-setup.
    """
    return success(_dump(two_factor_service.setup_totp(db, user)))


@router.post("/verify-setup", summary="Confirmer et activer la 2FA")
def verify_setup(
    data: Optional[VerifySetupRequest] = None,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    data = data or VerifySetupRequest()
    return success(_dump(two_factor_service.verify_setup(db, user, data.code, data.method)))


@router.post("/disable", summary="Désactiver la 2FA")
def disable(
    data: Optional[DisableRequest] = None,
    user: UserPublic = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Le mot de passe actuel est exigé ; en cas d'échec rien n'est modifié."""
    data = data or DisableRequest()
    return success(_dump(two_factor_service.disable(db, user, data.password)))


@router.post("/send-otp", summary="Renvoyer le code email (défi de connexion)")
def send_otp(data: Optional[SendOtpRequest] = None, db: Session = Depends(get_db)):
    data = data or SendOtpRequest()
    return success(_dump(two_factor_service.send_login_otp(db, data.temp_token)))


@router.post("/verify", summary="Vérifier le second facteur (défi de connexion)")
def verify(data: Optional[VerifyChallengeRequest] = None, db: Session = Depends(get_db)):
    """
    Échange le jeton temporaire + code contre un jeton de session.
    Après 5 codes faux, toute tentative est refusée pendant 5 minutes (429 RATE_LIMITED).
    """
    data = data or VerifyChallengeRequest()
    return success(_dump(two_factor_service.verify_login_challenge(db, data.temp_token, data.code)))
