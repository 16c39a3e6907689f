"""
Dépendances FastAPI d'authentification.

En-tête attendu : Authorization: Bearer <jeton de session>
  - absent ou mal formé  → 401 NO_TOKEN
  - expiré               → 401 TOKEN_EXPIRED
  - signature invalide, jeton illisible ou jeton "2fa" → 401 INVALID_TOKEN
  - utilisateur supprimé → 401 USER_NOT_FOUND
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app import errors
from app.database import get_db
from app.errors import ApiError
from app.schemas.user import UserPublic
from app.services import user_store
from app.services.token_service import TokenStatus, token_issuer

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> UserPublic:
    if credentials is None or not credentials.credentials:
        raise ApiError(errors.NO_TOKEN, "Authentication required. Please log in.")

    check = token_issuer.verify_session(credentials.credentials)
    if check.status is TokenStatus.EXPIRED:
        raise ApiError(errors.TOKEN_EXPIRED, "Session expired. Please log in again.")
    if not check.ok:
        raise ApiError(errors.INVALID_TOKEN, "Invalid authentication token.")

    user = user_store.get_user(db, check.user_id)
    if user is None:
        raise ApiError(
            errors.USER_NOT_FOUND,
            "User associated with this token no longer exists.",
            status_code=401,
        )
    return user
