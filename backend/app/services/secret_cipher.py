"""
Chiffrement symétrique des secrets TOTP au repos.

Clé : SHA-256(SECRET_KEY) → 32 octets (AES-256-GCM).
Format stocké : "<nonce hex>:<ciphertext hex>" ; le nonce aléatoire (12 octets)
est tiré à chaque appel et stocké avec le chiffré, decrypt est autonome.
"""

import hashlib
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from app.config import settings

NONCE_LENGTH = 12


class DecryptionError(Exception):
    """Chiffré malformé ou non authentique (clé serveur changée, donnée altérée)."""


def derive_key(server_secret: str) -> bytes:
    return hashlib.sha256(server_secret.encode("utf-8")).digest()


class SecretCipher:

    def __init__(self, server_secret: str) -> None:
        self._aesgcm = AESGCM(derive_key(server_secret))

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_LENGTH)
        ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return f"{nonce.hex()}:{ciphertext.hex()}"

    def decrypt(self, token: str) -> str:
        nonce_hex, sep, ciphertext_hex = token.partition(":")
        if not sep or not nonce_hex or not ciphertext_hex:
            raise DecryptionError("Format de secret chiffré invalide.")
        try:
            nonce = bytes.fromhex(nonce_hex)
            ciphertext = bytes.fromhex(ciphertext_hex)
        except ValueError as exc:
            raise DecryptionError("Secret chiffré non hexadécimal.") from exc
        if len(nonce) != NONCE_LENGTH:
            raise DecryptionError("Longueur de nonce invalide.")
        try:
            return self._aesgcm.decrypt(nonce, ciphertext, None).decode("utf-8")
        except InvalidTag as exc:
            raise DecryptionError("Échec d'authentification du secret chiffré.") from exc


secret_cipher = SecretCipher(settings.SECRET_KEY)
