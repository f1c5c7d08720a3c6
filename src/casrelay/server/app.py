"""
JSON-over-HTTP RPC surface exposing the ``Login`` operation.

The application owns the process-wide transport: it is opened when the
application starts and closed on cleanup, and every request shares it.
Logins still in flight when shutdown begins end as ``cancelled`` (499). A
caller that disconnects cancels its handler, and the attempt with it.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from aiohttp import web

from casrelay.auth import Authenticator, CasLoginOrchestrator
from casrelay.infra.transport import create_transport
from casrelay.schemas import AppConfig, LoginFailure, LoginSuccess

logger = logging.getLogger(__name__)

AUTHENTICATOR_KEY = web.AppKey("authenticator", Authenticator)
AUTH_TOKEN_KEY = web.AppKey("auth_token", str)
SHUTDOWN_EVENT_KEY = web.AppKey("shutdown_event", asyncio.Event)

# Client Closed Request (nginx convention)
HTTP_CLIENT_CLOSED_REQUEST = 499

FAILURE_STATUS: dict[str, int] = {
    "invalid_credentials": 401,
    "token_missing": 401,
    "session_init_error": 502,
    "upstream_error": 502,
    "transport_error": 503,
    "cancelled": HTTP_CLIENT_CLOSED_REQUEST,
}

_PUBLIC_PATHS = frozenset({"/healthz"})

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def status_for(failure: LoginFailure) -> int:
    """Maps a login failure onto the HTTP status returned to callers."""
    if failure.kind == "transport_error" and failure.transport_error == "timeout":
        return 504
    return FAILURE_STATUS.get(failure.kind, 500)


def error_response(status: int, kind: str, message: str) -> web.Response:
    return web.json_response(
        {"error": {"kind": kind, "message": message}}, status=status
    )


@web.middleware
async def bearer_auth_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """Requires ``Authorization: Bearer <token>`` when a token is configured."""
    expected = request.app.get(AUTH_TOKEN_KEY)
    if not expected or request.path in _PUBLIC_PATHS:
        return await handler(request)

    supplied = request.headers.get("Authorization", "")
    scheme, _, token = supplied.partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(
        token.strip().encode(), expected.encode()
    ):
        return error_response(401, "unauthenticated", "No valid auth token")
    return await handler(request)


async def handle_login(request: web.Request) -> web.Response:
    try:
        payload = await request.json()
    except ValueError:
        return error_response(400, "invalid_argument", "Body must be a JSON object")
    if not isinstance(payload, dict):
        return error_response(400, "invalid_argument", "Body must be a JSON object")

    username = payload.get("username")
    password = payload.get("password")
    if not isinstance(username, str) or not username:
        return error_response(400, "invalid_argument", "Username cannot be empty")
    if not isinstance(password, str) or not password:
        return error_response(400, "invalid_argument", "Password cannot be empty")

    authenticator = request.app[AUTHENTICATOR_KEY]
    outcome = await authenticator.login(
        username, password, cancel_event=request.app[SHUTDOWN_EVENT_KEY]
    )

    if isinstance(outcome, LoginSuccess):
        return web.json_response({"token": outcome.token})
    return error_response(status_for(outcome), outcome.kind, outcome.detail)


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def _abandon_logins(app: web.Application) -> None:
    """Cancels in-flight login attempts once the server begins shutting down."""
    app[SHUTDOWN_EVENT_KEY].set()


def _transport_ctx(
    cfg: AppConfig,
) -> Callable[[web.Application], AsyncIterator[None]]:
    async def ctx(app: web.Application) -> AsyncIterator[None]:
        transport = create_transport(cfg.transport.backend, cfg.transport)
        await transport.init()
        app[AUTHENTICATOR_KEY] = CasLoginOrchestrator(transport, cfg.upstream)
        logger.info(
            "Transport ready (%s, base_url=%s)",
            cfg.transport.backend,
            cfg.transport.base_url,
        )
        try:
            yield
        finally:
            await transport.close()
            logger.info("Transport closed")

    return ctx


def create_app(
    cfg: AppConfig | None = None,
    *,
    authenticator: Authenticator | None = None,
) -> web.Application:
    """Builds the RPC application.

    Args:
        cfg: Service configuration. Defaults to :class:`AppConfig`.
        authenticator: Login service to use instead of a
            :class:`CasLoginOrchestrator` over a freshly created transport.

    Returns:
        web.Application: The configured application.
    """
    cfg = cfg or AppConfig()
    app = web.Application(middlewares=[bearer_auth_middleware])
    app[SHUTDOWN_EVENT_KEY] = asyncio.Event()
    app.on_shutdown.append(_abandon_logins)
    if cfg.server.auth_token:
        app[AUTH_TOKEN_KEY] = cfg.server.auth_token

    if authenticator is None:
        app.cleanup_ctx.append(_transport_ctx(cfg))
    else:
        app[AUTHENTICATOR_KEY] = authenticator

    app.router.add_post("/login", handle_login)
    app.router.add_get("/healthz", handle_health)
    return app


def run_server(cfg: AppConfig) -> None:
    """Serves the RPC application until interrupted."""
    app = create_app(cfg)
    if not cfg.server.auth_token:
        logger.warning("No auth token configured; /login accepts any caller")
    logger.info("RPC server listening on %s:%d", cfg.server.host, cfg.server.port)
    web.run_app(
        app,
        host=cfg.server.host,
        port=cfg.server.port,
        print=None,
        handler_cancellation=True,
    )
