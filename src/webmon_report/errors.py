"""Exceptions raised while aggregating a change report."""

from typing import Any


class WebmonReportError(Exception):
    """Base exception for webmon-report."""

    pass


class ApiError(WebmonReportError):
    """The API answered with a non-200 status.

    Args:
        status_code: HTTP status of the response.
        error: First entry of the response's ``errors`` array, or the raw body
            text when the body carries no structured error.
    """

    def __init__(self, status_code: int, error: Any = None) -> None:
        self.status_code = status_code
        self.error = error
        super().__init__(f"API error {status_code}: {_describe(error)}")


class RequestError(WebmonReportError):
    """A request still failed after the client's retry budget was spent."""

    def __init__(self, url: str, last_error: BaseException) -> None:
        self.url = url
        self.last_error = last_error
        super().__init__(f"Request to {url} failed: {last_error}")


class ParseError(WebmonReportError):
    """A response body, or a record in it, could not be parsed."""

    def __init__(self, url: str, detail: str) -> None:
        self.url = url
        super().__init__(f"Could not parse response from {url}: {detail}")


class FatalAggregationError(WebmonReportError):
    """A request, parse or API failure that aborted the whole run."""

    pass


class DataIntegrityWarning(UserWarning):
    """Category for recoverable data problems (orphan versions, empty pages).

    Only used to tag log records; it is never raised.
    """

    pass


def _describe(error: Any) -> str:
    if isinstance(error, dict):
        title = error.get("title") or error.get("message")
        detail = error.get("detail")
        if title and detail:
            return f"{title} ({detail})"
        if title or detail:
            return str(title or detail)
    return str(error)
