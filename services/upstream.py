"""HTTP fetching of upstream resources."""

from collections.abc import AsyncIterator

import httpx

from core.exceptions import UpstreamFetchError


class UpstreamClient:
    """Issue proxied requests to arbitrary origins with streaming support."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def dispatch(
        self,
        method: str,
        target_url: str,
        headers: list[tuple[bytes, bytes]],
        body: bytes = b"",
    ) -> httpx.Response:
        """Send the request and return the final (post-redirect) response.

        The response is opened in streaming mode; callers release it
        with ``close`` (``read_text`` does so itself).
        """
        try:
            req = self._client.build_request(
                method,
                target_url,
                headers=headers,
                content=body or None,
            )
            return await self._client.send(req, stream=True, follow_redirects=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise UpstreamFetchError(str(e) or type(e).__name__, target_url=target_url) from e

    async def read_text(self, response: httpx.Response) -> str:
        """Buffer the whole (decoded) body and return it as text."""
        try:
            await response.aread()
        except httpx.HTTPError as e:
            raise UpstreamFetchError(
                str(e) or type(e).__name__, target_url=str(response.url)
            ) from e
        finally:
            await response.aclose()
        return response.text

    async def relay(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """Yield the body exactly as received, content-encoding included.

        The response stays open afterwards; release it with ``close``.
        """
        async for chunk in response.aiter_raw():
            yield chunk

    async def close(self, response: httpx.Response) -> None:
        """Release the upstream connection."""
        await response.aclose()
