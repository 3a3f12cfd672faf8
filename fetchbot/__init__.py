"""
Minimal HTTP fetch layer: build a Request, download() it, read the Response as bytes, text, HTML or JSON.
"""
from .downloader import close_default_client, default_client, download, select_client
from .errors import BodyReadError, FetchError, HttpErr, MalformedURLLiteral, RequestBuildError
from .models import (
    PostDataType,
    Request,
    Response,
    new_get_request,
    new_post_request,
    new_request,
)
from .logging_setup import configure_logging
from .urls import must_parse_url, parse_url

__all__ = [
    "BodyReadError",
    "FetchError",
    "HttpErr",
    "MalformedURLLiteral",
    "PostDataType",
    "Request",
    "RequestBuildError",
    "Response",
    "close_default_client",
    "configure_logging",
    "default_client",
    "download",
    "must_parse_url",
    "new_get_request",
    "new_post_request",
    "new_request",
    "parse_url",
    "select_client",
]
