"""
Émission et vérification des jetons JWT.

Deux catégories, distinguées par la claim obligatoire "type" :
  - "session" : jeton d'accès complet, durée configurable (7 jours par défaut)
  - "2fa"     : jeton d'attente du second facteur, 5 minutes fixes, porte la méthode

La vérification renvoie un résultat étiqueté (TokenCheck) au lieu de lever :
VALID, EXPIRED, MALFORMED (signature invalide, jeton illisible, claims incorrectes)
ou WRONG_TYPE (jeton valide mais de l'autre catégorie).
"""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from app.config import settings

SESSION_TYPE = "session"
PENDING_2FA_TYPE = "2fa"

# Fenêtre courte, volontairement non configurable
PENDING_2FA_TTL = timedelta(minutes=5)


class TokenStatus(str, enum.Enum):
    VALID = "valid"
    EXPIRED = "expired"
    MALFORMED = "malformed"
    WRONG_TYPE = "wrong_type"


@dataclass
class TokenCheck:
    status: TokenStatus
    user_id: Optional[uuid.UUID] = None
    method: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is TokenStatus.VALID


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        session_ttl: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.session_ttl = session_ttl
        self._clock = clock

    def _encode(self, claims: dict, ttl: timedelta) -> str:
        now = self._clock()
        payload = {**claims, "iat": now, "exp": now + ttl}
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def issue_session(self, user_id) -> str:
        return self._encode({"sub": str(user_id), "type": SESSION_TYPE}, self.session_ttl)

    def issue_pending_2fa(self, user_id, method: str) -> str:
        return self._encode(
            {"sub": str(user_id), "type": PENDING_2FA_TYPE, "method": method},
            PENDING_2FA_TTL,
        )

    def _decode(self, token: str, expected_type: str) -> TokenCheck:
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            return TokenCheck(TokenStatus.EXPIRED)
        except jwt.PyJWTError:
            return TokenCheck(TokenStatus.MALFORMED)

        if payload.get("type") != expected_type:
            return TokenCheck(TokenStatus.WRONG_TYPE)
        try:
            user_id = uuid.UUID(str(payload["sub"]))
        except ValueError:
            return TokenCheck(TokenStatus.MALFORMED)
        return TokenCheck(TokenStatus.VALID, user_id=user_id, method=payload.get("method"))

    def verify_session(self, token: str) -> TokenCheck:
        return self._decode(token, SESSION_TYPE)

    def verify_pending_2fa(self, token: str) -> TokenCheck:
        check = self._decode(token, PENDING_2FA_TYPE)
        if check.ok and check.method not in ("email", "totp"):
            return TokenCheck(TokenStatus.MALFORMED)
        return check


token_issuer = TokenIssuer(
    secret_key=settings.SECRET_KEY,
    algorithm=settings.ALGORITHM,
    session_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
)
