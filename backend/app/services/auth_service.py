"""
Service métier d'inscription et de connexion.

Connexion :
  1. Vérifier email + mot de passe (même message générique si l'utilisateur
     n'existe pas ou si le mot de passe est faux)
  2. 2FA désactivée → jeton de session
  3. 2FA activée    → jeton temporaire "2fa" (5 min) ; si méthode email, un OTP
     est généré, persisté et envoyé immédiatement. Aucun jeton de session à ce stade.
"""

import logging
import re
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app import errors
from app.errors import ApiError
from app.schemas.auth import AuthSession, LoginRequest, RegisterRequest, TwoFactorChallenge
from app.services import user_store
from app.services.password_service import MIN_PASSWORD_LENGTH, hash_password, verify_password
from app.services.token_service import token_issuer
from app.services.two_factor_service import dispatch_email_otp

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def _blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def register(db: Session, data: RegisterRequest) -> AuthSession:
    """
    Crée un compte (rôle user, 2FA désactivée) et retourne directement un jeton de session.
    Lève MISSING_FIELDS, VALIDATION_ERROR, WEAK_PASSWORD ou EMAIL_EXISTS.
    """
    if _blank(data.name) or _blank(data.email) or not data.password:
        raise ApiError(errors.MISSING_FIELDS, "Name, email, and password are required.")
    if not EMAIL_PATTERN.match(data.email.strip()):
        raise ApiError(errors.VALIDATION_ERROR, "Please provide a valid email.")
    if len(data.password) < MIN_PASSWORD_LENGTH:
        raise ApiError(errors.WEAK_PASSWORD, f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")

    if user_store.email_exists(db, data.email):
        raise ApiError(errors.EMAIL_EXISTS, "An account with this email already exists.")

    password_hash = hash_password(data.password)
    try:
        user = user_store.create_user(db, data.name, data.email, password_hash)
    except IntegrityError:
        # Inscription concurrente avec le même email
        db.rollback()
        raise ApiError(errors.EMAIL_EXISTS, "An account with this email already exists.")

    logger.info("Compte créé : %s (%s)", user.email, user.id)
    return AuthSession(token=token_issuer.issue_session(user.id), user=user)


def login(db: Session, data: LoginRequest) -> Union[AuthSession, TwoFactorChallenge]:
    """Vérifie les identifiants ; retourne une session ou un défi 2FA."""
    if _blank(data.email) or not data.password:
        raise ApiError(errors.MISSING_FIELDS, "Email and password are required.")

    creds = user_store.get_credentials_by_email(db, data.email)
    if creds is None or not verify_password(data.password, creds.password_hash):
        logger.info("Échec de connexion pour %s", user_store.normalize_email(data.email))
        raise ApiError(errors.INVALID_CREDENTIALS, "Email or password is incorrect.")

    user = creds.to_public()
    if not user.two_factor_enabled or user.two_factor_method not in ("email", "totp"):
        return AuthSession(token=token_issuer.issue_session(user.id), user=user)

    temp_token = token_issuer.issue_pending_2fa(user.id, user.two_factor_method)
    if user.two_factor_method == "email" and not dispatch_email_otp(db, user):
        # Le client peut redemander un code via /2fa/send-otp
        logger.warning("OTP de connexion non envoyé pour %s", user.id)

    return TwoFactorChallenge(method=user.two_factor_method, temp_token=temp_token)
