"""
Accès aux utilisateurs (stockage des identifiants).

Deux chemins de lecture distincts :
- get_user / get_user_by_email          → UserPublic (sans champs sensibles)
- get_credentials / get_credentials_by_email → UserCredentials (hash, secret TOTP, OTP)

Aucune logique métier ici : normalisation de l'email et contraintes d'unicité uniquement.
"""

import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.models.user import User
from app.schemas.user import RiskProfile, UserCredentials, UserPublic

# Champs qu'une mise à jour a le droit de toucher
UPDATABLE_FIELDS = {
    "name",
    "role",
    "risk_profile",
    "two_factor_enabled",
    "two_factor_method",
    "two_factor_secret_encrypted",
    "email_otp_code",
    "email_otp_expires_at",
}


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _to_public(user: User) -> UserPublic:
    return UserPublic(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        risk_profile=RiskProfile(**user.risk_profile) if user.risk_profile else None,
        two_factor_enabled=bool(user.two_factor_enabled),
        two_factor_method=user.two_factor_method or "none",
    )


def _to_credentials(user: User) -> UserCredentials:
    return UserCredentials(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        risk_profile=RiskProfile(**user.risk_profile) if user.risk_profile else None,
        two_factor_enabled=bool(user.two_factor_enabled),
        two_factor_method=user.two_factor_method or "none",
        password_hash=user.password_hash,
        two_factor_secret_encrypted=user.two_factor_secret_encrypted,
        email_otp_code=user.email_otp_code,
        email_otp_expires_at=user.email_otp_expires_at,
    )


def create_user(db: Session, name: str, email: str, password_hash: str, role: str = "user") -> UserPublic:
    """Crée un utilisateur. Lève IntegrityError si l'email existe déjà."""
    user = User(
        name=name.strip(),
        email=normalize_email(email),
        password_hash=password_hash,
        role=role,
        two_factor_enabled=False,
        two_factor_method="none",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return _to_public(user)


def email_exists(db: Session, email: str) -> bool:
    return db.execute(
        select(User.id).where(User.email == normalize_email(email))
    ).scalar() is not None


def get_user(db: Session, user_id: uuid.UUID) -> Optional[UserPublic]:
    user = db.get(User, user_id)
    return _to_public(user) if user else None


def get_user_by_email(db: Session, email: str) -> Optional[UserPublic]:
    user = db.execute(select(User).where(User.email == normalize_email(email))).scalar()
    return _to_public(user) if user else None


def get_credentials(db: Session, user_id: uuid.UUID) -> Optional[UserCredentials]:
    user = db.get(User, user_id)
    return _to_credentials(user) if user else None


def get_credentials_by_email(db: Session, email: str) -> Optional[UserCredentials]:
    user = db.execute(select(User).where(User.email == normalize_email(email))).scalar()
    return _to_credentials(user) if user else None


def update_user(db: Session, user_id: uuid.UUID, **fields) -> Optional[UserPublic]:
    """
    Applique les champs fournis en un seul UPDATE (atomique au niveau de la ligne).
    Retourne la projection publique à jour, ou None si l'utilisateur n'existe pas.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Champs non modifiables : {sorted(unknown)}")

    result = db.execute(update(User).where(User.id == user_id).values(**fields))
    db.commit()
    if result.rowcount == 0:
        return None
    db.expire_all()
    return get_user(db, user_id)
