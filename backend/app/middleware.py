"""
Middlewares ASGI de protection des requêtes.

  - SecurityHeadersMiddleware : en-têtes de sécurité HTTP sur toutes les réponses
  - RequestRateLimitMiddleware : quotas par adresse IP sur /api/ et /api/auth/ (429 RATE_LIMITED)
  - BodySizeLimitMiddleware : corps de requête plafonné (413 PAYLOAD_TOO_LARGE)

Middlewares ASGI bruts plutôt que BaseHTTPMiddleware : le flux de la requête
n'est pas enveloppé et les réponses d'erreur gardent l'enveloppe JSON de l'API.
"""

import logging
from typing import List, Optional, Tuple

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app import errors
from app.config import settings
from app.errors import failure

logger = logging.getLogger(__name__)


def _header(scope: Scope, name: bytes) -> Optional[str]:
    for key, value in scope.get("headers") or []:
        if key.lower() == name:
            return value.decode("latin-1")
    return None


# ============================================================
# En-têtes de sécurité
# ============================================================

SECURITY_HEADERS: List[Tuple[bytes, bytes]] = [
    (b"x-content-type-options", b"nosniff"),
    (b"x-frame-options", b"SAMEORIGIN"),
    (b"referrer-policy", b"no-referrer"),
    (b"strict-transport-security", b"max-age=15552000; includeSubDomains"),
    (b"cross-origin-opener-policy", b"same-origin"),
    (b"cross-origin-resource-policy", b"same-origin"),
    (b"origin-agent-cluster", b"?1"),
    (b"x-dns-prefetch-control", b"off"),
    (b"x-download-options", b"noopen"),
    (b"x-permitted-cross-domain-policies", b"none"),
    (b"x-xss-protection", b"0"),
]

CONTENT_SECURITY_POLICY = (
    b"default-src 'self';base-uri 'self';font-src 'self' https: data:;"
    b"form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
    b"object-src 'none';script-src 'self';script-src-attr 'none';"
    b"style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
)

# Swagger UI et ReDoc chargent scripts et styles depuis un CDN
DOCS_PATHS = ("/api/docs", "/api/redoc")


class SecurityHeadersMiddleware:

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        with_csp = not (scope.get("path") or "").startswith(DOCS_PATHS)

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers") or [])
                present = {key.lower() for key, _ in headers}
                extra = list(SECURITY_HEADERS)
                if with_csp:
                    extra.append((b"content-security-policy", CONTENT_SECURITY_POLICY))
                headers.extend(h for h in extra if h[0] not in present)
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_headers)


# ============================================================
# Quotas de requêtes par adresse IP
# ============================================================

request_limit_storage = MemoryStorage()
_window_limiter = FixedWindowRateLimiter(request_limit_storage)

API_LIMIT_MESSAGE = "Too many requests. Please try again later."
AUTH_LIMIT_MESSAGE = "Too many authentication attempts. Please try again later."


class RequestRateLimitMiddleware:
    """
    Fenêtre fixe par adresse IP, état local au processus :
      - /api/       → REQUEST_LIMIT_API
      - /api/auth/  → REQUEST_LIMIT_AUTH, décomptée en plus de la limite générale
    """

    def __init__(self, app: ASGIApp, api_limit: str, auth_limit: str, enabled: bool = True) -> None:
        self.app = app
        self.api_limit = parse(api_limit)
        self.auth_limit = parse(auth_limit)
        self.enabled = enabled

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        path = scope.get("path") or ""
        if not self.enabled or scope.get("type") != "http" or not path.startswith("/api/"):
            await self.app(scope, receive, send)
            return

        client = scope.get("client")
        ip = client[0] if client else "unknown"

        message = None
        if not _window_limiter.hit(self.api_limit, "api", ip):
            message = API_LIMIT_MESSAGE
        elif path.startswith("/api/auth/") and not _window_limiter.hit(self.auth_limit, "auth", ip):
            message = AUTH_LIMIT_MESSAGE

        if message is not None:
            logger.warning("Quota de requêtes dépassé pour %s sur %s", ip, path)
            response = JSONResponse(status_code=429, content=failure(errors.RATE_LIMITED, message))
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)


# ============================================================
# Taille du corps de requête
# ============================================================

class BodySizeLimitMiddleware:
    """
    Refuse les corps plus grands que max_bytes : d'après Content-Length quand il est
    fourni, sinon en lisant le flux (chunked) avant de le transmettre à l'application.
    """

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = JSONResponse(
            status_code=413,
            content=failure(errors.PAYLOAD_TOO_LARGE, f"Request body exceeds {self.max_bytes} bytes."),
        )
        await response(scope, receive, send)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        declared = _header(scope, b"content-length")
        if declared is not None and declared.isdigit():
            if int(declared) > self.max_bytes:
                await self._reject(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        buffered: List[Message] = []
        total = 0
        while True:
            message = await receive()
            if message["type"] != "http.request":
                buffered.append(message)
                break
            total += len(message.get("body", b""))
            if total > self.max_bytes:
                await self._reject(scope, receive, send)
                return
            buffered.append(message)
            if not message.get("more_body", False):
                break

        async def replay() -> Message:
            if buffered:
                return buffered.pop(0)
            return await receive()

        await self.app(scope, replay, send)
