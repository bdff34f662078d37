"""FastAPI route handlers."""

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse, StreamingResponse

from core.config import Config
from core.exceptions import MissingTargetError
from core.headers import HeaderSanitizer
from core.protocols import RequestLogger
from core.request_types import PreparedRequest
from core.urls import build_proxy_prefix, parse_target
from ui.log_utils import write_request_log

MISSING_TARGET_MESSAGE = "?target= query parameter is required."


async def _prepare_request(request: Request, config: Config) -> PreparedRequest:
    """Extract the target and everything needed to forward the request."""
    raw_target = request.query_params.get("target")
    if not raw_target:
        raise MissingTargetError(MISSING_TARGET_MESSAGE)

    target_url = parse_target(raw_target)
    prefix = build_proxy_prefix(
        request.headers,
        path=config.proxy.path,
        fallback_host=request.url.netloc,
    )
    sanitizer: HeaderSanitizer = request.app.state.header_sanitizer
    headers = sanitizer.upstream_headers(request.headers.raw)
    body = await request.body()

    if config.proxy.debug:
        write_request_log(request.method, target_url, dict(request.headers), len(body))

    return PreparedRequest(request.method, target_url, headers, body, prefix)


async def handle_proxy(
    request: Request,
    config: Config,
    logger: RequestLogger,
) -> Response | StreamingResponse:
    """Handle the proxy endpoint; every failure becomes a plain-text error."""
    target = request.query_params.get("target", "")
    try:
        prepared = await _prepare_request(request, config)
        proxy_service = request.app.state.proxy_service
        return await proxy_service.proxy(prepared)
    except MissingTargetError as e:
        logger.log_error(target, 400, str(e))
        return PlainTextResponse(str(e), status_code=400)
    except Exception as e:
        detail = str(e) or type(e).__name__
        logger.log_error(target, 502, detail)
        return PlainTextResponse(f"Proxy error: {detail}", status_code=502)
