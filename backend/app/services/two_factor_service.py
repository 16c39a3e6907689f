"""
Service métier de l'authentification à deux facteurs (TOTP ou code par email).

Configuration (utilisateur connecté) :
  1. setup_totp / setup_email  → secret chiffré ou OTP persisté, 2FA pas encore active
  2. verify_setup(code, method) → active la 2FA si le code est correct
  3. disable(password)          → revérifie le mot de passe puis efface méthode, secret et OTP

Défi de connexion (jeton "2fa" issu de auth_service.login) :
  - send_login_otp(temp_token)        → renvoie un nouvel OTP par email
  - verify_login_challenge(temp_token, code) → limité à 5 échecs / 5 min, délivre le jeton de session
"""

import hmac
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app import errors
from app.errors import ApiError
from app.schemas.auth import AuthSession
from app.schemas.two_factor import MessageResponse, TotpSetupResponse, TwoFactorStatus
from app.schemas.user import TWO_FACTOR_METHODS, UserCredentials, UserPublic
from app.services import totp_service, user_store
from app.services.email_service import send_otp_email
from app.services.otp_service import generate_email_otp, otp_expiry, utcnow
from app.services.password_service import verify_password
from app.services.rate_limiter import (
    LOGIN_CHALLENGE,
    SETUP_VERIFICATION,
    otp_rate_limiter,
    rate_limit_key,
)
from app.services.secret_cipher import secret_cipher
from app.services.token_service import token_issuer

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "Too many attempts. Please wait 5 minutes."
INVALID_CODE_MESSAGE = "Invalid verification code."


# ============================================================
# Utilitaires partagés
# ============================================================

def dispatch_email_otp(db: Session, user: UserPublic) -> bool:
    """Génère un nouvel OTP, le persiste (code + expiration) puis l'envoie. Retourne le succès de l'envoi."""
    code = generate_email_otp()
    user_store.update_user(db, user.id, email_otp_code=code, email_otp_expires_at=otp_expiry())
    return send_otp_email(user.email, code, user.name)


def _check_code(
    creds: UserCredentials,
    method: str,
    code: str,
    require_secret: bool,
    now: Optional[datetime] = None,
) -> bool:
    """
    Vérifie un code pour la méthode donnée.
    Lève NO_SECRET (si require_secret), NO_OTP ou OTP_EXPIRED ; retourne False si le code est faux.
    DecryptionError n'est pas interceptée (erreur interne).
    """
    if method == "totp":
        if not creds.two_factor_secret_encrypted:
            if require_secret:
                raise ApiError(errors.NO_SECRET, "Please setup TOTP first.")
            return False
        secret = secret_cipher.decrypt(creds.two_factor_secret_encrypted)
        return totp_service.verify_code(secret, code)

    if not creds.email_otp_code or not creds.email_otp_expires_at:
        raise ApiError(errors.NO_OTP, "No OTP found. Please request a new one.")
    if (now or utcnow()) > creds.email_otp_expires_at:
        raise ApiError(errors.OTP_EXPIRED, "OTP has expired. Please request a new one.")
    return hmac.compare_digest(creds.email_otp_code.encode(), code.encode())


def _decode_temp_token(temp_token: str):
    check = token_issuer.verify_pending_2fa(temp_token)
    if not check.ok:
        logger.info("Jeton 2FA rejeté (%s)", check.status.value)
        raise ApiError(errors.INVALID_TOKEN, "Invalid or expired temp token.")
    return check


# ============================================================
# Configuration (utilisateur authentifié)
# ============================================================

def get_status(user: UserPublic) -> TwoFactorStatus:
    return TwoFactorStatus(enabled=user.two_factor_enabled, method=user.two_factor_method)


def setup_totp(db: Session, user: UserPublic) -> TotpSetupResponse:
    """
    Génère un secret TOTP, le stocke chiffré (2FA non activée tant que non vérifiée)
    et retourne le QR code + la clé manuelle. La clé brute n'est montrée qu'ici.
    """
    enrollment = totp_service.generate_secret(user.email)
    user_store.update_user(
        db, user.id, two_factor_secret_encrypted=secret_cipher.encrypt(enrollment.secret)
    )
    logger.info("Secret TOTP généré pour l'utilisateur %s", user.id)
    return TotpSetupResponse(
        qr_code=totp_service.render_qr_data_uri(enrollment.uri),
        manual_key=enrollment.secret,
        message="Scan the QR code with your authenticator app, then verify with a code.",
    )


def setup_email(db: Session, user: UserPublic) -> MessageResponse:
    if not dispatch_email_otp(db, user):
        raise ApiError(errors.EMAIL_FAILED, "Failed to send verification email.")
    return MessageResponse(message="Verification code sent to your email.")


def verify_setup(db: Session, user: UserPublic, code: Optional[str], method: Optional[str]) -> MessageResponse:
    """Active la 2FA après vérification d'un premier code. Limité comme le défi de connexion."""
    if not code or not method:
        raise ApiError(errors.MISSING_FIELDS, "Code and method are required.")
    if method not in TWO_FACTOR_METHODS:
        raise ApiError(errors.INVALID_METHOD, 'Method must be "email" or "totp".')

    key = rate_limit_key(SETUP_VERIFICATION, user.id)
    if not otp_rate_limiter.acquire(key).allowed:
        raise ApiError(errors.RATE_LIMITED, RATE_LIMITED_MESSAGE)

    creds = user_store.get_credentials(db, user.id)
    if creds is None:
        raise ApiError(errors.USER_NOT_FOUND, "User not found.")

    if not _check_code(creds, method, code.strip(), require_secret=True):
        raise ApiError(errors.INVALID_CODE, INVALID_CODE_MESSAGE)

    otp_rate_limiter.clear(key)
    fields = {"two_factor_enabled": True, "two_factor_method": method}
    if method == "email":
        fields.update(email_otp_code=None, email_otp_expires_at=None)
    user_store.update_user(db, user.id, **fields)

    logger.info("2FA activée (%s) pour l'utilisateur %s", method, user.id)
    return MessageResponse(message="Two-factor authentication has been enabled!")


def disable(db: Session, user: UserPublic, password: Optional[str]) -> MessageResponse:
    """Désactive la 2FA après revérification du mot de passe. Aucune modification si échec."""
    if not password:
        raise ApiError(errors.MISSING_FIELDS, "Password is required.")

    creds = user_store.get_credentials(db, user.id)
    if creds is None:
        raise ApiError(errors.USER_NOT_FOUND, "User not found.")
    if not verify_password(password, creds.password_hash):
        raise ApiError(errors.INVALID_PASSWORD, "Incorrect password.")

    user_store.update_user(
        db,
        user.id,
        two_factor_enabled=False,
        two_factor_method="none",
        two_factor_secret_encrypted=None,
        email_otp_code=None,
        email_otp_expires_at=None,
    )
    logger.info("2FA désactivée pour l'utilisateur %s", user.id)
    return MessageResponse(message="Two-factor authentication has been disabled.")


# ============================================================
# Défi de connexion (jeton 2FA temporaire)
# ============================================================

def send_login_otp(db: Session, temp_token: Optional[str]) -> MessageResponse:
    if not temp_token:
        raise ApiError(errors.MISSING_FIELDS, "Temp token is required.")
    check = _decode_temp_token(temp_token)
    if check.method != "email":
        raise ApiError(errors.INVALID_METHOD, "This account does not use email verification.")

    user = user_store.get_user(db, check.user_id)
    if user is None:
        raise ApiError(errors.USER_NOT_FOUND, "User not found.")

    if not dispatch_email_otp(db, user):
        raise ApiError(errors.EMAIL_FAILED, "Failed to send OTP email.")
    return MessageResponse(message="Verification code sent to your email.")


def verify_login_challenge(db: Session, temp_token: Optional[str], code: Optional[str]) -> AuthSession:
    """
    Vérifie le second facteur et délivre le jeton de session.
    Chaque tentative est réservée (et comptée) avant l'évaluation du code ;
    un succès efface le compteur, la 5e tentative sans succès verrouille la clé 5 minutes.
    """
    if not temp_token or not code:
        raise ApiError(errors.MISSING_FIELDS, "Temp token and code are required.")
    check = _decode_temp_token(temp_token)

    key = rate_limit_key(LOGIN_CHALLENGE, check.user_id)
    if not otp_rate_limiter.acquire(key).allowed:
        logger.warning("Vérification 2FA refusée (verrouillage actif) pour %s", check.user_id)
        raise ApiError(errors.RATE_LIMITED, RATE_LIMITED_MESSAGE)

    creds = user_store.get_credentials(db, check.user_id)
    if creds is None:
        raise ApiError(errors.USER_NOT_FOUND, "User not found.")

    if not _check_code(creds, check.method, code.strip(), require_secret=False):
        logger.warning("Code 2FA invalide pour l'utilisateur %s", creds.id)
        raise ApiError(errors.INVALID_CODE, INVALID_CODE_MESSAGE)

    otp_rate_limiter.clear(key)
    user = user_store.update_user(db, creds.id, email_otp_code=None, email_otp_expires_at=None)
    logger.info("Connexion 2FA réussie pour l'utilisateur %s", creds.id)
    return AuthSession(token=token_issuer.issue_session(creds.id), user=user or creds.to_public())
