"""
Point d'entrée principal de l'API SafeMed.
Démarrage : uvicorn app.main:app --reload
"""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import app.models  # noqa: F401  enregistre les modèles dans Base.metadata avant les routers
from app import errors
from app.config import settings
from app.database import init_db
from app.errors import ApiError, failure, success
from app.middleware import BodySizeLimitMiddleware, RequestRateLimitMiddleware, SecurityHeadersMiddleware
from app.routers import auth, profile, two_factor
from app.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)

_started_at = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Cycle de vie de l'application : tables (optionnel) et scheduler de purge du limiteur 2FA."""
    if settings.AUTO_CREATE_TABLES:
        init_db()
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="SafeMed API",
    description="API d'authentification et de vérification en deux étapes de SafeMed AI",
    version="0.1.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

# Le dernier middleware ajouté est le plus externe :
# en-têtes de sécurité → CORS → quotas par IP → taille du corps → routes
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_BODY_BYTES)
app.add_middleware(
    RequestRateLimitMiddleware,
    api_limit=settings.REQUEST_LIMIT_API,
    auth_limit=settings.REQUEST_LIMIT_AUTH,
    enabled=settings.REQUEST_LIMITS_ENABLED,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)
app.add_middleware(SecurityHeadersMiddleware)


app.include_router(auth.router)
app.include_router(two_factor.router)
app.include_router(profile.router)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Erreur métier attendue : code stable + message, sans trace."""
    return JSONResponse(status_code=exc.status_code, content=failure(exc.code, exc.message))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body JSON illisible ou types incorrects → 400 VALIDATION_ERROR."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"Invalid request body ({location}): {first.get('msg', 'invalid value')}" if location \
        else "Invalid request body."
    return JSONResponse(status_code=400, content=failure(errors.VALIDATION_ERROR, message))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Intercepte toutes les exceptions non gérées (base injoignable, secret indéchiffrable...).
    Le détail est journalisé côté serveur ; le client ne reçoit que SERVER_ERROR.
    """
    logger.error("Exception non gérée sur %s %s : %s", request.method, request.url.path, exc, exc_info=True)
    message = "An unexpected error occurred." if settings.ENV == "production" else str(exc) or "Internal error."
    return JSONResponse(status_code=500, content=failure(errors.SERVER_ERROR, message))


@app.get("/api/health", tags=["Santé"])
def health_check():
    """Vérifie que l'API est opérationnelle."""
    return success({
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _started_at, 3),
    })
