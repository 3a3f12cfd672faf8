import http.server
import json
import threading

import httpx
import pytest

from fetchbot import downloader as download_module

PROXY_ENV_VARS = ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy")


class EchoHandler(http.server.BaseHTTPRequestHandler):
    """Replies with a JSON description of the request, except for a few fixed routes."""

    def _reply(self, status: int, body: bytes, content_type: str, extra_headers=()) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        for name, value in extra_headers:
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(body)

    def _handle(self) -> None:
        self.server.hits.append(self.path)
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""

        if self.path == "/html":
            return self._reply(200, b"<p>hi</p>", "text/html")
        if self.path == "/empty":
            return self._reply(200, b"", "text/plain")
        if self.path == "/set-cookie":
            return self._reply(200, b"ok", "text/plain", [("Set-Cookie", "session=abc; Path=/")])
        if self.path.startswith("/status/"):
            return self._reply(int(self.path.rsplit("/", 1)[1]), b"status page", "text/plain")

        headers = {}
        for name, value in self.headers.items():
            headers.setdefault(name.lower(), []).append(value)
        payload = {
            "method": self.command,
            "path": self.path,
            "headers": headers,
            "body": body.decode("utf-8", "replace"),
        }
        self._reply(200, json.dumps(payload).encode("utf-8"), "application/json")

    do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = _handle

    def log_message(self, format: str, *args) -> None:
        return


@pytest.fixture(scope="module")
def live_server():
    server = http.server.ThreadingHTTPServer(("127.0.0.1", 0), EchoHandler)
    server.daemon_threads = True
    server.hits = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def base_url(live_server):
    live_server.hits.clear()
    host, port = live_server.server_address
    return f"http://{host}:{port}"


@pytest.fixture(autouse=True)
def _fresh_default_client(monkeypatch):
    for name in PROXY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    download_module.close_default_client()
    yield
    download_module.close_default_client()


@pytest.fixture
def mock_transport(monkeypatch):
    """Replace the shared client with one answered by a handler function.

    Returns an installer taking the handler; the list it returns collects
    every httpx.Request the handler saw.
    """
    def install(handler):
        seen = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        client = httpx.Client(
            transport=httpx.MockTransport(recording_handler),
            cookies=download_module._refusing_cookie_jar(),
        )
        monkeypatch.setattr(download_module, "_default_client", client)
        return seen

    return install
