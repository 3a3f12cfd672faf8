"""
Request and Response descriptors used by the downloader.
"""
import enum
import json
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import urlencode

import httpx
from lxml import etree, html

from .urls import parse_url


class PostDataType(enum.Enum):
    """Body encodings understood by new_post_request, valued by their Content-Type."""

    TEXT = "text/plain"
    URLENCODED = "application/x-www-form-urlencoded"
    JSON = "application/json"


class Request:
    """Outbound call descriptor.

    Setters mutate the instance in place and return it, so calls can be
    chained. A Request is not safe to mutate from several threads at once.
    """

    def __init__(
        self,
        url: httpx.URL = None,
        method: str = "GET",
        cookies: List[Tuple[str, str]] = None,
        headers: httpx.Headers = None,
        body: bytes = b"",
        proxy: str = "",
    ):
        self.url = url if url is not None else httpx.URL()
        self.method = method
        self.cookies = cookies if cookies is not None else []
        self.headers = headers if headers is not None else httpx.Headers()
        self.body = body
        self.proxy = proxy

    def set_url(self, url: Union[str, httpx.URL]) -> "Request":
        self.url = url if isinstance(url, httpx.URL) else parse_url(url)
        return self

    def set_header(self, key: str, value: str) -> "Request":
        """Replace every existing value of key with value."""
        self.headers[key] = value
        return self

    def set_body(self, body: bytes) -> "Request":
        self.body = body
        return self

    def add_cookie(self, name: str, value: str) -> "Request":
        """Append a cookie. Repeated names are all sent."""
        self.cookies.append((name, value))
        return self

    def with_proxy(self, proxy: str) -> "Request":
        """Route this request through proxy. The string is only checked by download()."""
        self.proxy = proxy
        return self

    def __repr__(self) -> str:
        return f"<Request [{self.method}] {self.url}>"


def new_request() -> Request:
    """Create an empty GET request with no URL, headers, cookies, body or proxy."""
    return Request()


def new_get_request(url: str) -> Request:
    return new_request().set_url(url)


def new_post_request(url: str, data_type: PostDataType, data: Any) -> Request:
    """Create a POST request whose body is data encoded as data_type.

    Args:
        url: Target URL
        data_type: How to encode data; also decides the Content-Type header
        data: str/bytes are sent as-is. Otherwise a mapping or pair sequence
            for URLENCODED, or any JSON-serialisable value for JSON.

    Returns:
        The new Request
    """
    request = new_request().set_url(url)
    request.method = "POST"
    request.set_header("Content-Type", data_type.value)
    return request.set_body(_encode_post_data(data_type, data))


def _encode_post_data(data_type: PostDataType, data: Any) -> bytes:
    if isinstance(data, bytes):
        return data
    if isinstance(data, str):
        return data.encode("utf-8")

    if data_type is PostDataType.URLENCODED:
        return urlencode(data, doseq=True).encode("ascii")
    if data_type is PostDataType.JSON:
        return json.dumps(data).encode("utf-8")
    raise TypeError(f"Text post data must be str or bytes, got {type(data).__name__}")


class Response:
    """Completed exchange with the body exposed as bytes, text, HTML and JSON.

    ``html`` and ``json`` are always set. When the body does not parse they
    hold an empty document and an empty dict; ``html_parsed`` and
    ``json_parsed`` tell the two cases apart.
    """

    def __init__(
        self,
        url: httpx.URL,
        status: int,
        headers: httpx.Headers,
        body: bytes,
        request: Request,
        http_response: httpx.Response,
        text: str,
        html: html.HtmlElement,
        json: Dict[str, Any],
        html_parsed: bool = True,
        json_parsed: bool = True,
    ):
        self.url = url
        self.status = status
        self.headers = headers
        self.body = body
        self.request = request
        self.http_response = http_response
        self.text = text
        self.html = html
        self.json = json
        self.html_parsed = html_parsed
        self.json_parsed = json_parsed

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    def __repr__(self) -> str:
        return f"<Response [{self.status}] {self.url} {len(self.body)} bytes>"


def decode_text(body: bytes) -> str:
    """Decode body as UTF-8, escaping invalid bytes so the text encodes back to body exactly."""
    return body.decode("utf-8", errors="surrogateescape")


def empty_document() -> html.HtmlElement:
    return html.Element("html")


def parse_html(body: bytes) -> Tuple[html.HtmlElement, bool]:
    """Parse body as an HTML document, falling back to an empty one."""
    try:
        return html.document_fromstring(body), True
    except (etree.ParserError, etree.XMLSyntaxError, ValueError):
        return empty_document(), False


def parse_json(body: bytes) -> Tuple[Dict[str, Any], bool]:
    """Decode body as a JSON object. Anything else, arrays included, gives {}."""
    try:
        data = json.loads(body)
    except (ValueError, RecursionError):
        return {}, False
    if not isinstance(data, dict):
        return {}, False
    return data, True

