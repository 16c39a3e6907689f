"""
Hachage des mots de passe (Argon2id).
Le mot de passe en clair n'est jamais journalisé.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()

MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    """Retourne le hash encodé (paramètres + sel inclus). Lève HashingError en cas d'échec."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Vérifie un mot de passe candidat. Retourne False si non concordant ou hash illisible."""
    try:
        return _hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False
