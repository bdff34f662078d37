"""Proxy orchestration: fetch, sanitize, rewrite or relay."""

import httpx
from fastapi import Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from core.headers import HeaderSanitizer
from core.protocols import RequestLogger
from core.request_types import PreparedRequest
from core.rewrite import ContentRewriter
from services.upstream import UpstreamClient

HTML_CONTENT_TYPE = "text/html"


class ProxyService:
    """Turn a prepared request into the outbound response."""

    def __init__(
        self,
        logger: RequestLogger,
        upstream: UpstreamClient,
        sanitizer: HeaderSanitizer,
        rewriter: ContentRewriter,
    ) -> None:
        self._logger = logger
        self._upstream = upstream
        self._sanitizer = sanitizer
        self._rewriter = rewriter

    async def proxy(self, prepared: PreparedRequest) -> Response | StreamingResponse:
        """Fetch the target and build the rewritten or passthrough response."""
        self._logger.log_request(prepared.method, prepared.target_url)
        response = await self._upstream.dispatch(
            prepared.method,
            prepared.target_url,
            prepared.headers,
            prepared.body,
        )
        headers = self._sanitizer.sanitize(response.headers)
        if HTML_CONTENT_TYPE in headers.get("Content-Type", ""):
            return await self._rewritten_response(prepared, response, headers)
        return self._passthrough_response(prepared, response, headers)

    async def _rewritten_response(
        self,
        prepared: PreparedRequest,
        response: httpx.Response,
        headers: httpx.Headers,
    ) -> Response:
        """Buffer the HTML body, rewrite its links, re-encode in its charset."""
        html = await self._upstream.read_text(response)
        html = self._rewriter.rewrite(html, prepared.target_url, prepared.proxy_prefix)
        encoding = response.encoding or "utf-8"

        outbound = Response(
            content=html.encode(encoding, errors="xmlcharrefreplace"),
            status_code=response.status_code,
        )
        _append_headers(outbound, self._sanitizer.downstream_headers(headers, rewritten=True))
        self._logger.log_response(
            prepared.method,
            prepared.target_url,
            response.status_code,
            reason=response.reason_phrase,
            rewritten=True,
        )
        return outbound

    def _passthrough_response(
        self,
        prepared: PreparedRequest,
        response: httpx.Response,
        headers: httpx.Headers,
    ) -> StreamingResponse:
        """Relay the upstream body untouched."""
        outbound = StreamingResponse(
            self._upstream.relay(response),
            status_code=response.status_code,
            background=BackgroundTask(self._upstream.close, response),
        )
        _append_headers(outbound, self._sanitizer.downstream_headers(headers, rewritten=False))
        self._logger.log_response(
            prepared.method,
            prepared.target_url,
            response.status_code,
            reason=response.reason_phrase,
        )
        return outbound


def _append_headers(response: Response, headers: list[tuple[str, str]]) -> None:
    """Attach headers one by one so repeated names (Set-Cookie) survive."""
    for key, value in headers:
        response.headers.append(key, value)
