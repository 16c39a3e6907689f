"""
Tests du service d'inscription et de connexion.
"""

from unittest.mock import patch

import pytest

from app.errors import ApiError
from app.schemas.auth import AuthSession, LoginRequest, RegisterRequest, TwoFactorChallenge
from app.services import auth_service, user_store
from app.services.token_service import TokenStatus, token_issuer


def register(db, name="Alice", email="alice@example.com", password="longenough1"):
    return auth_service.register(db, RegisterRequest(name=name, email=email, password=password))


# ============================================================
# Inscription
# ============================================================

def test_inscription_succes(db):
    session = register(db)
    assert isinstance(session, AuthSession)
    assert session.user.email == "alice@example.com"
    assert session.user.role == "user"
    check = token_issuer.verify_session(session.token)
    assert check.ok
    assert check.user_id == session.user.id


def test_inscription_mot_de_passe_hashe(db):
    session = register(db)
    creds = user_store.get_credentials(db, session.user.id)
    assert creds.password_hash != "longenough1"
    assert creds.two_factor_enabled is False
    assert creds.two_factor_method == "none"


@pytest.mark.parametrize("name,email,password", [
    (None, "alice@example.com", "longenough1"),
    ("Alice", None, "longenough1"),
    ("Alice", "alice@example.com", None),
    ("   ", "alice@example.com", "longenough1"),
    ("Alice", "", "longenough1"),
])
def test_inscription_champs_manquants(db, name, email, password):
    with pytest.raises(ApiError) as exc:
        register(db, name=name, email=email, password=password)
    assert exc.value.code == "MISSING_FIELDS"
    assert exc.value.status_code == 400


def test_inscription_mot_de_passe_trop_court(db):
    with pytest.raises(ApiError) as exc:
        register(db, password="short7!")
    assert exc.value.code == "WEAK_PASSWORD"


def test_inscription_huit_caracteres_accepte(db):
    assert register(db, password="12345678").token


def test_inscription_email_invalide(db):
    with pytest.raises(ApiError) as exc:
        register(db, email="not-an-email")
    assert exc.value.code == "VALIDATION_ERROR"


def test_inscription_email_deja_utilise(db):
    """Une seconde inscription avec le même email (casse différente) → EMAIL_EXISTS."""
    register(db)
    with pytest.raises(ApiError) as exc:
        register(db, name="Alice bis", email="ALICE@Example.com")
    assert exc.value.code == "EMAIL_EXISTS"
    assert exc.value.status_code == 409


# ============================================================
# Connexion
# ============================================================

def test_connexion_sans_2fa(db):
    register(db)
    result = auth_service.login(db, LoginRequest(email="Alice@example.com", password="longenough1"))
    assert isinstance(result, AuthSession)
    assert token_issuer.verify_session(result.token).ok


@pytest.mark.parametrize("email,password", [
    ("alice@example.com", "wrongpassword"),
    ("nobody@example.com", "longenough1"),
])
def test_connexion_identifiants_invalides_message_generique(db, email, password):
    """Utilisateur inconnu ou mot de passe faux : même code, même message."""
    register(db)
    with pytest.raises(ApiError) as exc:
        auth_service.login(db, LoginRequest(email=email, password=password))
    assert exc.value.code == "INVALID_CREDENTIALS"
    assert exc.value.message == "Email or password is incorrect."
    assert exc.value.status_code == 401


def test_connexion_champs_manquants(db):
    with pytest.raises(ApiError) as exc:
        auth_service.login(db, LoginRequest(email="alice@example.com"))
    assert exc.value.code == "MISSING_FIELDS"


def test_connexion_2fa_totp_retourne_defi(db, sent_emails):
    session = register(db)
    user_store.update_user(db, session.user.id, two_factor_enabled=True, two_factor_method="totp")

    result = auth_service.login(db, LoginRequest(email="alice@example.com", password="longenough1"))

    assert isinstance(result, TwoFactorChallenge)
    assert result.requires_2fa is True
    assert result.method == "totp"
    assert token_issuer.verify_pending_2fa(result.temp_token).ok
    # Le jeton temporaire n'ouvre pas de session
    assert token_issuer.verify_session(result.temp_token).status is TokenStatus.WRONG_TYPE
    assert sent_emails == []


def test_connexion_2fa_email_envoie_code(db, sent_emails):
    session = register(db)
    user_store.update_user(db, session.user.id, two_factor_enabled=True, two_factor_method="email")

    result = auth_service.login(db, LoginRequest(email="alice@example.com", password="longenough1"))

    assert result.method == "email"
    assert len(sent_emails) == 1
    assert sent_emails[0]["to"] == "alice@example.com"
    assert sent_emails[0]["name"] == "Alice"
    creds = user_store.get_credentials(db, session.user.id)
    assert creds.email_otp_code == sent_emails[0]["code"]
    assert creds.email_otp_expires_at is not None


def test_connexion_2fa_email_echec_envoi_non_bloquant(db, sent_emails):
    """Échec SMTP à la connexion : le défi est quand même retourné (renvoi possible)."""
    session = register(db)
    user_store.update_user(db, session.user.id, two_factor_enabled=True, two_factor_method="email")

    with patch("app.services.two_factor_service.send_otp_email", return_value=False):
        result = auth_service.login(db, LoginRequest(email="alice@example.com", password="longenough1"))

    assert isinstance(result, TwoFactorChallenge)
