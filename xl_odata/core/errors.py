"""
xl_odata.core.errors - Error taxonomy
======================================

Every failure the service can report derives from ``XlODataError``.
Each kind carries a stable ``code``, an HTTP ``status_code`` and a generic
``public_message``. The gateway only ever returns those; the exception's
own message and attributes are for logs.
"""

from __future__ import annotations

from typing import Dict, Optional


class XlODataError(Exception):
    """Base class for all service errors."""

    code = "InternalError"
    status_code = 500
    public_message = "Internal server error"


class ConfigurationError(XlODataError):
    """Required settings (e.g. Graph credentials) are missing."""

    code = "ConfigurationError"
    status_code = 500
    public_message = "Service is not configured"


class UpstreamAuthError(XlODataError):
    """The client-credentials exchange with the identity provider failed."""

    code = "UpstreamAuthError"
    status_code = 502
    public_message = "Upstream authentication failed"


class UpstreamDataError(XlODataError):
    """
    Reading the workbook table failed.

    Attributes
    ----------
    status : int
        HTTP status code from Graph, 0 for transport failures
    body : str
        Response body (truncated in the message)
    url : str
        The URL that was called
    headers : dict
        Response headers
    """

    code = "UpstreamDataError"
    status_code = 502
    public_message = "Failed to read workbook data"

    def __init__(
        self,
        status: int,
        body: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
    ):
        snippet = (body or "")[:1200]
        super().__init__(f"Graph upstream error {status} for {url}: {snippet}")
        self.status = status
        self.body = body or ""
        self.url = url
        self.headers = headers or {}


class InvalidKeyError(XlODataError):
    """An entity key is not a non-negative integer ordinal."""

    code = "InvalidKey"
    status_code = 400
    public_message = "Invalid entity key"


class EntityNotFoundError(XlODataError):
    """A well-formed key that matches no row."""

    code = "NotFound"
    status_code = 404
    public_message = "Entity not found"


class ResourceNotFoundError(XlODataError):
    """The path names no entity set the service exposes."""

    code = "NotFound"
    status_code = 404
    public_message = "Resource not found"
