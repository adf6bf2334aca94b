"""
xl_odata.core - Core connectivity and authentication
=====================================================

This module provides the foundational classes for talking to Microsoft Graph:

- SingleFlight: Shares one in-flight call, result or failure, among concurrent callers
- TokenCache: Single-flight cache for the client-credentials access token
- GraphConfig: Full connection configuration
- GraphSession: Low-level HTTP session with retry and paging
- ConnectionContext: High-level connection manager
- Error taxonomy shared by the whole package

"""

from xl_odata.core.errors import (
    XlODataError,
    ConfigurationError,
    UpstreamAuthError,
    UpstreamDataError,
    InvalidKeyError,
    EntityNotFoundError,
    ResourceNotFoundError,
)

from xl_odata.core.flight import SingleFlight

from xl_odata.core.token import AccessToken, GraphCredentials, TokenCache

from xl_odata.core.session import GraphConfig, GraphSession

from xl_odata.core.connection import ConnectionContext

__all__ = [
    "XlODataError",
    "ConfigurationError",
    "UpstreamAuthError",
    "UpstreamDataError",
    "InvalidKeyError",
    "EntityNotFoundError",
    "ResourceNotFoundError",
    "SingleFlight",
    "AccessToken",
    "GraphCredentials",
    "TokenCache",
    "GraphConfig",
    "GraphSession",
    "ConnectionContext",
]
