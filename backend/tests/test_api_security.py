"""
Tests d'intégration des protections au niveau requête :
en-têtes de sécurité, quotas par adresse IP, taille maximale du corps.
"""

import json

from app.config import settings


# ============================================================
# En-têtes de sécurité
# ============================================================

def test_entetes_securite_sur_reponse_api(client):
    response = client.get("/api/health")

    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "SAMEORIGIN"
    assert response.headers["referrer-policy"] == "no-referrer"
    assert "max-age=" in response.headers["strict-transport-security"]
    assert "default-src 'self'" in response.headers["content-security-policy"]


def test_entetes_securite_sur_reponse_erreur(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.headers["x-content-type-options"] == "nosniff"


def test_documentation_sans_csp(client):
    response = client.get("/api/docs")
    assert response.status_code == 200
    assert "content-security-policy" not in response.headers
    assert response.headers["x-content-type-options"] == "nosniff"


# ============================================================
# Quotas par adresse IP
# ============================================================

def test_quota_auth_21e_requete_refusee(client):
    body = {"email": "nobody@example.com", "password": "whatever1"}
    for _ in range(20):
        assert client.post("/api/auth/login", json=body).status_code == 401

    response = client.post("/api/auth/login", json=body)

    assert response.status_code == 429
    assert response.json() == {
        "success": False,
        "error": {
            "code": "RATE_LIMITED",
            "message": "Too many authentication attempts. Please try again later.",
        },
    }


def test_quota_auth_ne_bloque_pas_les_autres_routes(client):
    body = {"email": "nobody@example.com", "password": "whatever1"}
    for _ in range(21):
        client.post("/api/auth/login", json=body)

    assert client.get("/api/health").status_code == 200


def test_quota_general_101e_requete_refusee(client):
    for _ in range(100):
        assert client.get("/api/health").status_code == 200

    response = client.get("/api/health")

    assert response.status_code == 429
    assert response.json()["error"] == {
        "code": "RATE_LIMITED",
        "message": "Too many requests. Please try again later.",
    }


def test_quota_general_inclut_les_routes_auth(client):
    """Les requêtes /api/auth/ consomment aussi le quota général."""
    for _ in range(90):
        client.get("/api/health")
    for _ in range(10):
        client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "whatever1"})

    assert client.get("/api/health").status_code == 429


def test_quotas_configures():
    assert settings.REQUEST_LIMIT_API == "100 per 15 minutes"
    assert settings.REQUEST_LIMIT_AUTH == "20 per 15 minutes"
    assert settings.MAX_BODY_BYTES == 10 * 1024


# ============================================================
# Taille du corps
# ============================================================

def test_corps_trop_grand_413(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "A" * (11 * 1024), "email": "alice@example.com", "password": "longenough1"},
    )

    assert response.status_code == 413
    assert response.json()["success"] is False
    assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"


def test_corps_trop_grand_sans_content_length_413(client):
    chunks = iter([b'{"name": "' + b"A" * 6000, b"A" * 6000 + b'"}'])
    response = client.post(
        "/api/auth/register", content=chunks, headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 413
    assert response.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"


def test_corps_sans_content_length_sous_la_limite_accepte(client):
    payload = json.dumps({"name": "Alice", "email": "alice@example.com", "password": "longenough1"})
    response = client.post(
        "/api/auth/register",
        content=iter([payload.encode()]),
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 201
    assert response.json()["data"]["user"]["email"] == "alice@example.com"
