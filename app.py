"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from api.handlers import handle_proxy
from core.config import Config
from core.exceptions import ConfigurationError
from core.headers import HeaderSanitizer
from core.protocols import RequestLogger
from core.rewrite import ContentRewriter
from services.proxy_service import ProxyService
from services.upstream import UpstreamClient


def create_app(
    config: Config,
    logger: RequestLogger,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    upstream_settings = config.upstream
    if upstream_settings.max_keepalive_connections > upstream_settings.max_connections:
        raise ConfigurationError(
            "upstream.max_keepalive_connections cannot exceed upstream.max_connections"
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limits = httpx.Limits(
            max_connections=upstream_settings.max_connections,
            max_keepalive_connections=upstream_settings.max_keepalive_connections,
        )
        client = httpx.AsyncClient(
            timeout=upstream_settings.timeout,
            limits=limits,
            max_redirects=upstream_settings.max_redirects,
            verify=upstream_settings.verify_tls,
            transport=transport,
        )
        sanitizer = HeaderSanitizer()
        app.state.header_sanitizer = sanitizer
        app.state.proxy_service = ProxyService(
            logger=logger,
            upstream=UpstreamClient(client),
            sanitizer=sanitizer,
            rewriter=ContentRewriter(),
        )
        try:
            yield
        finally:
            await client.aclose()

    app = FastAPI(title="Mirror Proxy", version="0.1.0", lifespan=lifespan)

    async def proxy(request: Request):
        return await handle_proxy(request, config, logger)

    # methods=None matches any verb, WebDAV and custom ones included
    app.router.add_route(config.proxy.path, proxy, methods=None)

    return app
