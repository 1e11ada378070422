"""
Proxy error taxonomy.

Each error carries the status code and the public message returned to the
caller. Anything not derived from ProxyError is treated as an internal error
by the handler and never described to the caller.
"""

from typing import Any, Dict, Optional

from fastapi import status


class ProxyError(Exception):
    """Base class for errors with a caller-safe message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.retry_after = retry_after

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.retry_after is not None:
            body["retry_after"] = self.retry_after
        return body


class MethodNotAllowedError(ProxyError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED

    def __init__(self):
        super().__init__("Method not allowed")


class InvalidRequestError(ProxyError):
    """Missing or malformed field in the inbound body."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConfigurationError(ProxyError):
    """Server-side configuration is incomplete (e.g. no credential)."""

    def __init__(self):
        super().__init__("Server configuration error")


class UpstreamUnavailableError(ProxyError):
    """
    The upstream API answered with a non-success status.

    ``upstream_status`` and ``upstream_body`` are kept for server-side logging
    and for the verbose error-detail mode only.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(
        self,
        message: str,
        retry_after: int,
        upstream_status: int,
        upstream_body: str,
    ):
        super().__init__(message, retry_after=retry_after)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
