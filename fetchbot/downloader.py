"""
Executes a Request over HTTP and turns the reply into a Response.
"""
import re
import threading
from contextlib import contextmanager
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Iterator, Optional

import httpx
import structlog

from .config import get_config
from .errors import BodyReadError, HttpErr, RequestBuildError
from .models import Request, Response, decode_text, parse_html, parse_json
from .urls import parse_url

logger = structlog.get_logger(__name__)

# RFC 9110 method token
METHOD_TOKEN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")

_default_client: Optional[httpx.Client] = None
_default_client_lock = threading.Lock()


def _refusing_cookie_jar() -> CookieJar:
    # No allowed domains: Set-Cookie replies are never stored or replayed.
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


def new_client(proxy: httpx.URL = None) -> httpx.Client:
    """Build a client with the configured timeout and redirect policy, optionally routed through proxy."""
    fetcher = get_config().fetcher
    headers = {}
    if fetcher.get('user_agent'):
        headers['User-Agent'] = fetcher['user_agent']

    return httpx.Client(
        timeout=httpx.Timeout(fetcher.get('timeout', 10.0)),
        follow_redirects=fetcher.get('follow_redirects', True),
        max_redirects=fetcher.get('max_redirects', 10),
        headers=headers,
        cookies=_refusing_cookie_jar(),
        proxy=proxy,
    )


def default_client() -> httpx.Client:
    """Return the process-wide client shared by every unproxied download.

    httpx.Client is safe to share between threads, so callers use it without
    further locking. It is created on first use.
    """
    global _default_client
    with _default_client_lock:
        if _default_client is None:
            _default_client = new_client()
        return _default_client


def close_default_client() -> None:
    """Close the shared client. The next download creates a fresh one."""
    global _default_client
    with _default_client_lock:
        if _default_client is not None:
            _default_client.close()
            _default_client = None


@contextmanager
def select_client(request: Request) -> Iterator[httpx.Client]:
    """Yield the client that will carry request.

    Without a proxy this is the shared client. With one, a client is built
    for this call only and closed when the block exits.
    """
    if not request.proxy:
        yield default_client()
        return

    proxy_url = parse_url(request.proxy)
    try:
        client = new_client(proxy=proxy_url)
    except ValueError as e:
        raise RequestBuildError(f"Unsupported proxy {request.proxy!r}: {e}") from e

    logger.debug("proxy_client_created", proxy_scheme=proxy_url.scheme, proxy_host=proxy_url.host)
    with client:
        yield client


def _check_method(method: str) -> str:
    if method == "":
        return "GET"
    if not isinstance(method, str) or not METHOD_TOKEN.fullmatch(method):
        raise RequestBuildError(f"Invalid HTTP method: {method!r}")
    return method


def sanitize_cookie_name(name: str) -> str:
    return name.replace("\n", "-").replace("\r", "-")


def sanitize_cookie_value(value: str) -> str:
    """Drop characters not allowed in a cookie value; quote it if it holds a space or comma."""
    value = "".join(ch for ch in value if " " <= ch < "\x7f" and ch not in '";\\')
    if " " in value or "," in value:
        return f'"{value}"'
    return value


def _outgoing_headers(request: Request) -> httpx.Headers:
    """Copy the request headers and fold its cookies into a single Cookie header."""
    headers = httpx.Headers(request.headers) if request.headers is not None else httpx.Headers()

    if request.cookies:
        pairs = "; ".join(
            f"{sanitize_cookie_name(name)}={sanitize_cookie_value(value)}" for name, value in request.cookies
        )
        try:
            pairs.encode("ascii")
        except UnicodeEncodeError as e:
            raise RequestBuildError(f"Cookie names must be ASCII: {pairs!r}") from e
        existing = headers.get("Cookie")
        headers["Cookie"] = f"{existing}; {pairs}" if existing else pairs

    return headers


def download(request: Request) -> Response:
    """Execute request and return its Response.

    Every HTTP status, 4xx and 5xx included, yields a Response; callers check
    ``status`` themselves. The body is read fully before returning and is
    exposed as bytes, text, an HTML document and a JSON dict.

    Raises:
        RequestBuildError: the method, URL or proxy is unusable; nothing was sent
        HttpErr: the exchange failed (connect, DNS, TLS, timeout, proxy...)
        BodyReadError: the server replied but the body could not be read
    """
    method = _check_method(request.method)
    url = request.url if isinstance(request.url, httpx.URL) else parse_url(str(request.url))
    headers = _outgoing_headers(request)
    log = logger.bind(method=method, url=str(url))

    with select_client(request) as client:
        try:
            http_request = client.build_request(method, url, headers=headers, content=request.body or b"")
        except httpx.InvalidURL as e:
            raise RequestBuildError(f"Cannot build request for {url}: {e}") from e

        log.debug("download_started", proxied=bool(request.proxy))
        try:
            http_response = client.send(http_request, stream=True)
        except httpx.RequestError as e:
            log.debug("download_failed", error=str(e), error_type=type(e).__name__)
            raise HttpErr(e, request) from e

        try:
            body = http_response.read()
        except httpx.RequestError as e:
            log.debug("body_read_failed", error=str(e), status=http_response.status_code)
            raise BodyReadError(e, request) from e
        finally:
            http_response.close()

    document, html_parsed = parse_html(body)
    if not html_parsed:
        log.debug("html_parse_fallback", size=len(body))

    data, json_parsed = parse_json(body)
    if not json_parsed:
        log.debug("json_decode_fallback", size=len(body),
                  content_type=http_response.headers.get("content-type"))

    log.debug("download_finished", status=http_response.status_code, size=len(body))
    return Response(
        url=url,
        status=http_response.status_code,
        headers=http_response.headers,
        body=body,
        request=request,
        http_response=http_response,
        text=decode_text(body),
        html=document,
        json=data,
        html_parsed=html_parsed,
        json_parsed=json_parsed,
    )
