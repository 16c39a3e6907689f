"""
Limiteur de tentatives pour la vérification des codes 2FA (anti force brute).

Règles :
  - 5 échecs consécutifs pour une clé → verrouillage de 5 minutes, compteur remis à 0
  - pendant le verrouillage, toute tentative est refusée, même avec un code correct
  - acquire() réserve et compte une tentative avant l'évaluation du code, de façon
    atomique, pour que des requêtes concurrentes ne dépassent pas le seuil
  - un succès supprime l'enregistrement
  - un balayage périodique (scheduler.py) purge les enregistrements inactifs depuis
    plus de 10 minutes après la fin de leur verrouillage

Les clés combinent un usage et l'identifiant utilisateur ("2fa:<id>", "2fa-setup:<id>").

L'état est local au processus (InMemoryRateLimitStore) : plusieurs instances de
l'API ne partagent pas leurs compteurs. Un store externe peut être injecté en
implémentant RateLimitStore.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from app.config import settings

logger = logging.getLogger(__name__)

LOGIN_CHALLENGE = "2fa"
SETUP_VERIFICATION = "2fa-setup"

EVICTION_BUFFER_SECONDS = 10 * 60


def rate_limit_key(purpose: str, user_id) -> str:
    return f"{purpose}:{user_id}"


@dataclass
class AttemptRecord:
    failure_count: int = 0
    locked_until: float = 0.0
    last_failure_at: float = 0.0


@dataclass
class RateLimitDecision:
    allowed: bool
    remaining_attempts: int


class RateLimitStore(ABC):
    """Stockage des enregistrements. Chaque mutation d'une clé doit être atomique."""

    @abstractmethod
    def get(self, key: str) -> Optional[AttemptRecord]:
        ...

    @abstractmethod
    def mutate(
        self, key: str, fn: Callable[[AttemptRecord], AttemptRecord]
    ) -> AttemptRecord:
        """Lit (ou crée) l'enregistrement, applique fn et écrit le résultat en une opération."""

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def evict(self, predicate: Callable[[AttemptRecord], bool]) -> int:
        """Supprime les enregistrements pour lesquels predicate est vrai. Retourne le nombre supprimé."""


class InMemoryRateLimitStore(RateLimitStore):

    def __init__(self) -> None:
        self._records: Dict[str, AttemptRecord] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[AttemptRecord]:
        with self._lock:
            record = self._records.get(key)
            return None if record is None else AttemptRecord(**vars(record))

    def mutate(self, key, fn):
        with self._lock:
            record = fn(self._records.get(key) or AttemptRecord())
            self._records[key] = record
            return AttemptRecord(**vars(record))

    def delete(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)

    def evict(self, predicate) -> int:
        with self._lock:
            stale = [key for key, record in self._records.items() if predicate(record)]
            for key in stale:
                del self._records[key]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class RateLimiter:

    def __init__(
        self,
        store: Optional[RateLimitStore] = None,
        max_attempts: int = 5,
        lockout_seconds: float = 5 * 60,
        eviction_buffer_seconds: float = EVICTION_BUFFER_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store or InMemoryRateLimitStore()
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self.eviction_buffer_seconds = eviction_buffer_seconds
        self._clock = clock

    def check_allowed(self, key: str) -> RateLimitDecision:
        record = self.store.get(key)
        if record is None:
            return RateLimitDecision(allowed=True, remaining_attempts=self.max_attempts)
        if self._clock() < record.locked_until:
            return RateLimitDecision(allowed=False, remaining_attempts=0)
        return RateLimitDecision(
            allowed=True,
            remaining_attempts=max(0, self.max_attempts - record.failure_count),
        )

    def _count_failure(self, record: AttemptRecord, now: float) -> bool:
        """Incrémente le compteur ; retourne True si ce comptage déclenche le verrouillage."""
        record.failure_count += 1
        record.last_failure_at = now
        if record.failure_count >= self.max_attempts:
            record.locked_until = now + self.lockout_seconds
            record.failure_count = 0
            return True
        return False

    def record_failure(self, key: str) -> AttemptRecord:
        now = self._clock()
        locked = []

        def _apply(record: AttemptRecord) -> AttemptRecord:
            locked.append(self._count_failure(record, now))
            return record

        record = self.store.mutate(key, _apply)
        if locked[-1]:
            logger.warning("Verrouillage déclenché pour %s (%d échecs)", key, self.max_attempts)
        return record

    def acquire(self, key: str) -> RateLimitDecision:
        """
        Réserve une tentative de vérification : contrôle du verrouillage et comptage
        en une seule mutation atomique du store.

        La tentative est comptée comme un échec dès la réservation ; clear() l'efface
        si le code s'avère correct. Des requêtes simultanées ne peuvent donc jamais
        obtenir plus de max_attempts évaluations par fenêtre.
        """
        now = self._clock()
        decision = RateLimitDecision(allowed=False, remaining_attempts=0)
        locked = []

        def _apply(record: AttemptRecord) -> AttemptRecord:
            if now < record.locked_until:
                return record
            decision.allowed = True
            locked.append(self._count_failure(record, now))
            if not locked[-1]:
                decision.remaining_attempts = self.max_attempts - record.failure_count
            return record

        self.store.mutate(key, _apply)
        if locked and locked[-1]:
            logger.warning("Verrouillage déclenché pour %s (%d tentatives)", key, self.max_attempts)
        return decision

    def clear(self, key: str) -> None:
        self.store.delete(key)

    def sweep(self) -> int:
        """Purge les enregistrements dont la dernière activité date de plus du délai de rétention."""
        now = self._clock()
        evicted = self.store.evict(
            lambda r: now > max(r.locked_until, r.last_failure_at) + self.eviction_buffer_seconds
        )
        if evicted:
            logger.info("Limiteur 2FA : %d enregistrement(s) expiré(s) purgé(s)", evicted)
        return evicted


otp_rate_limiter = RateLimiter(
    max_attempts=settings.RATE_LIMIT_MAX_ATTEMPTS,
    lockout_seconds=settings.RATE_LIMIT_LOCKOUT_SECONDS,
)
