"""
URL parsing helpers built on httpx.URL
"""
import httpx

from .errors import MalformedURLLiteral, RequestBuildError


def parse_url(raw_url: str) -> httpx.URL:
    """Parse a runtime-supplied URL string, raising RequestBuildError when invalid."""
    try:
        return httpx.URL(raw_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise RequestBuildError(f"Invalid URL {raw_url!r}: {e}") from e


def must_parse_url(raw_url: str) -> httpx.URL:
    """Parse a URL literal written in code.

    Only use this for constants. Strings coming from users, config or the
    network go through parse_url instead.

    Raises:
        MalformedURLLiteral: if raw_url is not a valid URL
    """
    try:
        return httpx.URL(raw_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise MalformedURLLiteral(f"Malformed URL literal {raw_url!r}: {e}") from e
