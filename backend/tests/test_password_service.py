"""
Tests unitaires du hachage des mots de passe (Argon2id).
"""

from app.services.password_service import hash_password, verify_password


def test_hash_different_du_mot_de_passe():
    """Le hash ne contient jamais le mot de passe en clair."""
    digest = hash_password("longenough1")
    assert "longenough1" not in digest
    assert digest.startswith("$argon2id$")


def test_verification_mot_de_passe_correct():
    digest = hash_password("longenough1")
    assert verify_password("longenough1", digest) is True


def test_verification_mot_de_passe_incorrect():
    digest = hash_password("longenough1")
    assert verify_password("longenough2", digest) is False


def test_meme_mot_de_passe_hashes_differents():
    """Sel aléatoire : deux hashes du même mot de passe diffèrent."""
    assert hash_password("longenough1") != hash_password("longenough1")


def test_hash_illisible_retourne_false():
    """Un hash corrompu en base ne doit pas lever d'exception."""
    assert verify_password("longenough1", "pas-un-hash") is False
