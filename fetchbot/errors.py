"""
Exceptions raised by the downloader.
"""


class FetchError(Exception):
    """Base class for failures that stop a download from producing a response."""


class RequestBuildError(FetchError, ValueError):
    """The request could not be turned into an exchange (bad method, URL or proxy)."""


class HttpErr(FetchError):
    """The HTTP exchange itself failed (connect, DNS, TLS, timeout, proxy...)."""

    def __init__(self, error: Exception, request):
        super().__init__(str(error))
        self.error = error
        self.request = request

    def __str__(self) -> str:
        return f"{type(self.error).__name__} while fetching {self.request.url}: {self.error}"


class BodyReadError(FetchError):
    """The server replied but the response body could not be read to the end."""

    def __init__(self, error: Exception, request):
        super().__init__(str(error))
        self.error = error
        self.request = request


class MalformedURLLiteral(BaseException):
    """
    A hard-coded URL literal failed to parse.

    Derives from BaseException so that generic ``except Exception`` handlers
    do not trap it: a malformed literal is a bug in the calling code.
    """
