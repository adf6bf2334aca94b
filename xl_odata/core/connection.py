"""
xl_odata.core.connection - High-level connection management
============================================================

Provides a ConnectionContext that wires credentials, the shared token cache
and the Graph session together from explicit arguments or environment
variables.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Optional

from xl_odata.core.session import GraphConfig, GraphSession
from xl_odata.core.token import DEFAULT_SCOPE, GraphCredentials, TokenCache

if TYPE_CHECKING:
    from xl_odata.odata.table import GraphTableFetcher


class ConnectionContext:
    """
    High-level connection manager for the Graph workbook API.

    Supports environment variable configuration and context manager usage.
    Holds the one TokenCache of the process; every session it builds shares
    that cache.

    Parameters
    ----------
    tenant_id : str, optional
        Entra tenant id. Falls back to SHAREPOINT_TENANT_ID env var.
    client_id : str, optional
        Application id. Falls back to SHAREPOINT_CLIENT_ID env var.
    client_secret : str, optional
        Client secret. Falls back to SHAREPOINT_CLIENT_SECRET env var.
    base_url : str, optional
        Graph root. Falls back to GRAPH_BASE_URL env var.
    drive_path : str, optional
        Drive resource path. Falls back to GRAPH_DRIVE_PATH env var.
    scope : str, optional
        Token scope. Falls back to GRAPH_SCOPE env var.
    verify : bool, optional
        SSL verification. Falls back to GRAPH_VERIFY_TLS env var.
    timeout : float, optional
        Request timeout in seconds. Falls back to ODATA_TIMEOUT env var.
    tokens : TokenCache, optional
        Use an existing cache instead of creating one

    Examples
    --------
    >>> with ConnectionContext() as conn:  # reads SHAREPOINT_* env vars
    ...     table = conn.get_table("Documents/data.xlsx", "Table1")
    ...     rows = table.list_rows()
    """

    def __init__(
        self,
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        drive_path: Optional[str] = None,
        scope: Optional[str] = None,
        verify: Optional[bool] = None,
        timeout: Optional[float] = None,
        tokens: Optional[TokenCache] = None,
    ) -> None:
        self._credentials = GraphCredentials(
            tenant_id=tenant_id or os.environ.get("SHAREPOINT_TENANT_ID", ""),
            client_id=client_id or os.environ.get("SHAREPOINT_CLIENT_ID", ""),
            client_secret=client_secret or os.environ.get("SHAREPOINT_CLIENT_SECRET", ""),
        )
        self._base_url = (
            base_url or os.environ.get("GRAPH_BASE_URL", "https://graph.microsoft.com/v1.0")
        ).rstrip("/")
        self._drive_path = drive_path or os.environ.get("GRAPH_DRIVE_PATH", "sites/root/drive")

        if verify is not None:
            self._verify = verify
        else:
            self._verify = os.environ.get("GRAPH_VERIFY_TLS", "true").lower() != "false"

        if timeout is not None:
            self._timeout = float(timeout)
        else:
            self._timeout = float(os.environ.get("ODATA_TIMEOUT", "60"))

        if not self._base_url.startswith(("https://", "http://")):
            raise ValueError(
                "Invalid base_url. Set GRAPH_BASE_URL to an http(s) URL "
                "or pass base_url parameter."
            )

        self._owns_tokens = tokens is None
        self.tokens = tokens or TokenCache(
            scope or os.environ.get("GRAPH_SCOPE", DEFAULT_SCOPE),
            timeout=self._timeout,
        )
        self._session: Optional[GraphSession] = None

    @property
    def session(self) -> GraphSession:
        """Get or create the underlying Graph session."""
        if self._session is None:
            self._session = self._build_session()
        return self._session

    def _build_session(self) -> GraphSession:
        cfg = GraphConfig(
            credentials=self._credentials,
            base_url=self._base_url,
            verify=self._verify,
            timeout=self._timeout,
            retries=int(os.environ.get("ODATA_RETRIES", "3")),
            backoff=float(os.environ.get("ODATA_BACKOFF", "0.5")),
        )
        return GraphSession(cfg, self.tokens)

    def close(self) -> None:
        """Close the connection."""
        if self._session is not None:
            self._session.close()
            self._session = None
        if self._owns_tokens:
            self.tokens.close()

    def __enter__(self) -> "ConnectionContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get_table(self, file_path: str, table_name: str) -> "GraphTableFetcher":
        """
        Get a fetcher for one table of one workbook.

        Parameters
        ----------
        file_path : str
            Workbook path inside the drive
        table_name : str
            Excel table name

        Returns
        -------
        GraphTableFetcher
            Reader for the table's columns and rows
        """
        # Import here to avoid circular imports
        from xl_odata.odata.table import GraphTableFetcher
        return GraphTableFetcher(self.session, file_path, table_name, drive_path=self._drive_path)

    @property
    def credentials(self) -> GraphCredentials:
        """The configured client credentials."""
        return self._credentials

    @property
    def base_url(self) -> str:
        """The configured Graph root."""
        return self._base_url

    @property
    def drive_path(self) -> str:
        return self._drive_path
