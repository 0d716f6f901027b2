"""Provides an app factory for the whitelist gateway."""

import logging
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .engine import AuthorizationEngine
from .routes import router
from .services import DiscordClient, WhitelistStore
from .services.whitelist import create_db_engine

logger = logging.getLogger(__name__)


def create_app(settings: Settings,
               store: Optional[WhitelistStore] = None,
               client: Optional[DiscordClient] = None) -> FastAPI:
    """
    Initialize an instance of the whitelist gateway.

    The whitelist table is created if needed before the app is returned, so
    an unreachable database fails here rather than on the first request.
    """
    if store is None:
        store = WhitelistStore(
            create_db_engine(settings.sqlalchemy_url, settings.db_timeout),
            settings.table_prefix
        )
    if client is None:
        client = DiscordClient(
            settings.discord_client_id,
            settings.discord_client_secret,
            settings.redirect_uri,
            api_url=settings.discord_api_url,
            timeout=settings.provider_timeout,
        )
    store.initialize()

    engine = AuthorizationEngine(client, store, settings.allowed_guild,
                                 settings.allowed_roles)
    if not engine.allowed_roles:
        logger.warning('No allowed roles configured; nobody can be authorized')

    logger.info('Base path: %r', settings.base_path)
    logger.info('Redirect URI: %s', settings.redirect_uri)

    app = FastAPI(
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
        engine=engine,
        discord=client,
        store=store,
        FORWARDED_HEADER=settings.forwarded_header,
    )
    app.include_router(router, prefix=settings.base_path)

    @app.exception_handler(StarletteHTTPException)
    async def plain_http_exception(request: Request,
                                   exc: StarletteHTTPException) -> Response:
        return PlainTextResponse(str(exc.status_code),
                                 status_code=exc.status_code)

    @app.middleware("http")
    async def forbid_framing(request: Request,
                             call_next: Callable) -> Response:
        """Keep the consent redirect and result pages out of frames."""
        response: Response = await call_next(request)
        response.headers['Content-Security-Policy'] = "frame-ancestors 'none'"
        response.headers['X-Frame-Options'] = 'DENY'
        return response

    return app
