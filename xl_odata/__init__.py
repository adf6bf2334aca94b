"""
Excel OData Service (xl_odata)
==============================

Exposes one Excel table stored in SharePoint/OneDrive as a read-only
OData V4 entity set, protected by a static bearer token.

Usage
-----
>>> from xl_odata import ConnectionContext, EntityResolver
>>>
>>> with ConnectionContext() as conn:
...     resolver = EntityResolver(conn.get_table("Documents/data.xlsx", "Table1"))
...     rows = [e.to_json() for e in resolver.list_all()]

Subpackages
-----------
- xl_odata.core: Token cache, Graph session and configuration
- xl_odata.odata: Row translation, entity resolution and $metadata
- xl_odata.api: FastAPI OData gateway

"""

__version__ = "0.1.0"

# Core exports - available at package root
from xl_odata.core.errors import (
    XlODataError,
    ConfigurationError,
    UpstreamAuthError,
    UpstreamDataError,
    InvalidKeyError,
    EntityNotFoundError,
)
from xl_odata.core.token import AccessToken, GraphCredentials, TokenCache
from xl_odata.core.connection import ConnectionContext

# Convenience re-exports
from xl_odata.odata import EntityResolver, ODataEntity, translate

__all__ = [
    # Version
    "__version__",
    # Errors
    "XlODataError",
    "ConfigurationError",
    "UpstreamAuthError",
    "UpstreamDataError",
    "InvalidKeyError",
    "EntityNotFoundError",
    # Core
    "AccessToken",
    "GraphCredentials",
    "TokenCache",
    "ConnectionContext",
    # OData
    "EntityResolver",
    "ODataEntity",
    "translate",
]
