"""
Tests unitaires du chiffrement des secrets TOTP au repos.
"""

import pytest

from app.services.secret_cipher import DecryptionError, SecretCipher, derive_key


@pytest.fixture
def cipher():
    return SecretCipher("server-secret-for-tests")


def test_aller_retour(cipher):
    secret = "JBSWY3DPEHPK3PXPJBSWY3DPEHPK3PXP"
    assert cipher.decrypt(cipher.encrypt(secret)) == secret


def test_nonce_aleatoire(cipher):
    """Deux chiffrements du même secret produisent des chiffrés différents."""
    first = cipher.encrypt("JBSWY3DPEHPK3PXP")
    second = cipher.encrypt("JBSWY3DPEHPK3PXP")
    assert first != second
    assert first.split(":")[0] != second.split(":")[0]


def test_format_nonce_et_chiffre(cipher):
    nonce_hex, ciphertext_hex = cipher.encrypt("ABC").split(":")
    assert len(bytes.fromhex(nonce_hex)) == 12
    assert len(bytes.fromhex(ciphertext_hex)) > 0


def test_cle_derivee_deterministe():
    assert derive_key("abc") == derive_key("abc")
    assert len(derive_key("abc")) == 32
    assert derive_key("abc") != derive_key("abd")


def test_autre_cle_serveur_rejetee(cipher):
    """Un secret chiffré avec une autre clé serveur ne se déchiffre pas silencieusement."""
    token = SecretCipher("another-secret").encrypt("JBSWY3DPEHPK3PXP")
    with pytest.raises(DecryptionError):
        cipher.decrypt(token)


@pytest.mark.parametrize("token", [
    "sans-separateur",
    ":abcd",
    "abcd:",
    "zz:abcd",
    "00112233:abcd",  # nonce trop court
])
def test_chiffre_malforme(cipher, token):
    with pytest.raises(DecryptionError):
        cipher.decrypt(token)


def test_chiffre_altere(cipher):
    nonce_hex, ciphertext_hex = cipher.encrypt("JBSWY3DPEHPK3PXP").split(":")
    tampered = ciphertext_hex[:-2] + ("00" if ciphertext_hex[-2:] != "00" else "11")
    with pytest.raises(DecryptionError):
        cipher.decrypt(f"{nonce_hex}:{tampered}")
