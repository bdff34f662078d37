"""
End-to-end tests for the proxy endpoint.

The upstream origin is an httpx.MockTransport, the inbound side a FastAPI
TestClient whose Host header is myproxy.example.
"""

import gzip

import httpx

from api.handlers import MISSING_TARGET_MESSAGE


def html_page(body: bytes, **headers) -> httpx.Response:
    return httpx.Response(
        200, headers={"Content-Type": "text/html; charset=utf-8", **headers}, stream=httpx.ByteStream(body)
    )


class TestParseTarget:
    def test_missing_target_is_400(self, proxy_client, recording_logger):
        calls = []
        client = proxy_client(lambda request: calls.append(request) or httpx.Response(200))

        response = client.get("/api/proxy")

        assert response.status_code == 400
        assert response.text == MISSING_TARGET_MESSAGE
        assert calls == []
        assert recording_logger.errors == [("", 400, MISSING_TARGET_MESSAGE)]

    def test_empty_target_is_400(self, proxy_client):
        client = proxy_client(lambda request: httpx.Response(200))
        assert client.get("/api/proxy", params={"target": ""}).status_code == 400

    def test_missing_target_on_post(self, proxy_client):
        client = proxy_client(lambda request: httpx.Response(200))
        assert client.post("/api/proxy", content=b"x").status_code == 400

    def test_javascript_target_is_502(self, proxy_client):
        client = proxy_client(lambda request: httpx.Response(200))

        response = client.get("/api/proxy", params={"target": "javascript:alert(1)"})

        assert response.status_code == 502
        assert response.text.startswith("Proxy error:")

    def test_relative_target_is_502(self, proxy_client):
        client = proxy_client(lambda request: httpx.Response(200))
        response = client.get("/api/proxy", params={"target": "/just/a/path"})
        assert response.status_code == 502


class TestDispatch:
    def test_connection_failure_is_502(self, proxy_client, recording_logger):
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        client = proxy_client(handler)
        response = client.get("/api/proxy", params={"target": "https://down.example/"})

        assert response.status_code == 502
        assert response.text == "Proxy error: Connection refused"
        assert recording_logger.errors == [("https://down.example/", 502, "Connection refused")]

    def test_forwards_method_headers_and_body(self, proxy_client):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["host"] = request.headers["host"]
            seen["custom"] = request.headers.get("x-custom")
            seen["body"] = request.content
            return httpx.Response(200, headers={"Content-Type": "application/json"}, stream=httpx.ByteStream(b"{}"))

        client = proxy_client(handler)
        response = client.post(
            "/api/proxy",
            params={"target": "https://api.example.com/items?limit=5"},
            headers={"X-Custom": "yes"},
            content=b'{"a": 1}',
        )

        assert response.status_code == 200
        assert seen == {
            "method": "POST",
            "url": "https://api.example.com/items?limit=5",
            "host": "api.example.com",
            "custom": "yes",
            "body": b'{"a": 1}',
        }

    def test_non_ascii_header_forwarded_verbatim(self, proxy_client):
        seen = []

        def handler(request):
            seen.extend(value for key, value in request.headers.raw if key.lower() == b"x-name")
            return httpx.Response(200, headers={"Content-Type": "text/plain"}, stream=httpx.ByteStream(b"ok"))

        client = proxy_client(handler)
        response = client.get(
            "/api/proxy",
            params={"target": "https://example.com/"},
            headers={"x-name": "café".encode()},
        )

        assert response.status_code == 200
        assert seen == [b"caf\xc3\xa9"]

    def test_redirect_followed(self, proxy_client):
        def handler(request):
            if request.url.path == "/start":
                return httpx.Response(302, headers={"Location": "/landing"})
            return httpx.Response(200, headers={"Content-Type": "text/plain"}, stream=httpx.ByteStream(b"landed"))

        client = proxy_client(handler)
        response = client.get("/api/proxy", params={"target": "https://example.com/start"})

        assert response.status_code == 200
        assert response.text == "landed"


class TestHtmlPath:
    def test_rewrites_links_with_proxy_host(self, proxy_client):
        client = proxy_client(lambda request: html_page(b'<img src="/logo.png">'))

        response = client.get("/api/proxy", params={"target": "https://example.com/page"})

        assert response.status_code == 200
        assert (
            'src="http://myproxy.example/api/proxy?target=https%3A%2F%2Fexample.com%2Flogo.png"'
            in response.text
        )

    def test_forwarded_proto_used_in_prefix(self, proxy_client):
        client = proxy_client(lambda request: html_page(b'<a href="next">n</a>'))

        response = client.get(
            "/api/proxy",
            params={"target": "https://example.com/docs/"},
            headers={"X-Forwarded-Proto": "https"},
        )

        assert (
            'href="https://myproxy.example/api/proxy?target=https%3A%2F%2Fexample.com%2Fdocs%2Fnext"'
            in response.text
        )

    def test_embedding_headers_removed(self, proxy_client):
        client = proxy_client(
            lambda request: html_page(
                b"<p>hi</p>",
                **{
                    "content-security-policy": "frame-ancestors 'none'",
                    "X-FRAME-OPTIONS": "DENY",
                    "Cross-Origin-Embedder-Policy": "require-corp",
                    "X-Served-By": "origin-1",
                },
            )
        )

        response = client.get("/api/proxy", params={"target": "https://example.com/"})

        assert "content-security-policy" not in response.headers
        assert "x-frame-options" not in response.headers
        assert "cross-origin-embedder-policy" not in response.headers
        assert response.headers["x-served-by"] == "origin-1"
        assert response.headers["content-type"] == "text/html; charset=utf-8"

    def test_compressed_html_is_decoded_and_rewritten(self, proxy_client):
        body = gzip.compress(b'<link href="/s.css">')
        client = proxy_client(lambda request: html_page(body, **{"Content-Encoding": "gzip"}))

        response = client.get("/api/proxy", params={"target": "https://example.com/"})

        assert "content-encoding" not in response.headers
        assert response.text == (
            '<link href="http://myproxy.example/api/proxy?target=https%3A%2F%2Fexample.com%2Fs.css">'
        )

    def test_upstream_error_status_preserved(self, proxy_client):
        client = proxy_client(
            lambda request: httpx.Response(
                404, headers={"Content-Type": "text/html"}, stream=httpx.ByteStream(b'<a href="/">home</a>')
            )
        )

        response = client.get("/api/proxy", params={"target": "https://example.com/missing"})

        assert response.status_code == 404
        assert "target=https%3A%2F%2Fexample.com%2F" in response.text


class TestPassthroughPath:
    def test_binary_body_unchanged(self, proxy_client, recording_logger):
        payload = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 16
        client = proxy_client(
            lambda request: httpx.Response(
                200,
                headers={"Content-Type": "image/png", "X-Frame-Options": "DENY"},
                stream=httpx.ByteStream(payload),
            )
        )

        response = client.get("/api/proxy", params={"target": "https://example.com/logo.png"})

        assert response.status_code == 200
        assert response.content == payload
        assert "x-frame-options" not in response.headers
        assert recording_logger.responses == [
            ("GET", "https://example.com/logo.png", 200, "OK", False)
        ]

    def test_status_preserved(self, proxy_client):
        client = proxy_client(
            lambda request: httpx.Response(
                418, headers={"Content-Type": "text/plain"}, stream=httpx.ByteStream(b"teapot")
            )
        )

        response = client.get("/api/proxy", params={"target": "https://example.com/tea"})

        assert response.status_code == 418
        assert response.text == "teapot"

    def test_javascript_not_rewritten(self, proxy_client):
        script = b'var img = "<img src=\\"/a.png\\">";'
        client = proxy_client(
            lambda request: httpx.Response(
                200, headers={"Content-Type": "application/javascript"}, stream=httpx.ByteStream(script)
            )
        )

        response = client.get("/api/proxy", params={"target": "https://example.com/app.js"})

        assert response.content == script

    def test_repeated_headers_kept(self, proxy_client):
        client = proxy_client(
            lambda request: httpx.Response(
                200,
                headers=[("Content-Type", "text/plain"), ("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")],
                stream=httpx.ByteStream(b"ok"),
            )
        )

        response = client.get("/api/proxy", params={"target": "https://example.com/"})

        assert response.headers.get_list("set-cookie") == ["a=1", "b=2"]
