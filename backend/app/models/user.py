"""
Modèle SQLAlchemy pour les utilisateurs et leur état d'authentification à deux facteurs.

Les colonnes sensibles (password_hash, two_factor_secret_encrypted, email_otp_*)
ne sont lues que via les chemins explicites de app.services.user_store.
"""

import uuid
from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text, Uuid, func

from app.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)  # toujours en minuscules
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")  # user, admin
    risk_profile = Column(JSON, nullable=True)  # {age, conditions[], allergies[]}

    # 2FA : two_factor_enabled ⇔ two_factor_method ∈ {email, totp}
    two_factor_enabled = Column(Boolean, nullable=False, default=False)
    two_factor_method = Column(String(10), nullable=False, default="none")  # none, email, totp
    two_factor_secret_encrypted = Column(Text, nullable=True)
    email_otp_code = Column(String(6), nullable=True)
    email_otp_expires_at = Column(DateTime, nullable=True)  # UTC naïf

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
