"""
xl_odata.core.session - Microsoft Graph HTTP Session
=====================================================

Low-level session handling for the Graph workbook API with:
- Access tokens injected per request from the shared TokenCache
- Automatic retry with exponential backoff for idempotent reads
- Following of ``@odata.nextLink`` paging
- Error extraction from Graph error payloads
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Generator, List, Optional, Union
import logging
import time

import requests
from requests import Response, Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from xl_odata.core.errors import UpstreamDataError
from xl_odata.core.token import GraphCredentials, TokenCache


@dataclass
class GraphConfig:
    """
    Connection configuration for the Graph workbook API.

    Parameters
    ----------
    credentials : GraphCredentials
        Client-credentials identity used to obtain access tokens
    base_url : str
        Graph root, e.g. "https://graph.microsoft.com/v1.0"
    timeout : float
        Request timeout in seconds (default: 60.0)
    retries : int
        Number of retry attempts (default: 3)
    backoff : float
        Backoff factor for retries (default: 0.5)
    verify : bool or str
        SSL verification (True, False, or path to CA bundle)
    user_agent : str
        User-Agent header value

    Examples
    --------
    >>> cfg = GraphConfig(
    ...     credentials=GraphCredentials("tenant", "client", "secret"),
    ... )
    """
    credentials: GraphCredentials
    base_url: str = "https://graph.microsoft.com/v1.0"
    timeout: float = 60.0
    retries: int = 3
    backoff: float = 0.5
    verify: Union[bool, str] = True
    user_agent: str = "xl-odata/0.1"


class GraphSession:
    """
    Read-only HTTP session for Microsoft Graph.

    Parameters
    ----------
    cfg : GraphConfig
        Connection configuration
    tokens : TokenCache
        Shared access token cache

    Examples
    --------
    >>> with GraphSession(cfg, TokenCache()) as sess:
    ...     cols = sess.get_all("sites/root/drive/root:/data.xlsx:/workbook/tables/Table1/columns")
    """

    def __init__(self, cfg: GraphConfig, tokens: TokenCache) -> None:
        self.cfg = cfg
        self.tokens = tokens
        self.base = cfg.base_url.rstrip("/") + "/"
        self.timeout = float(cfg.timeout)
        self.verify = cfg.verify
        self.logger = logging.getLogger("xl_odata.graph")

        self.session = self._build_session()

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> "GraphSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------- session ----------------

    def _build_session(self) -> Session:
        sess = requests.Session()
        sess.headers.update({
            "Accept": "application/json",
            "User-Agent": self.cfg.user_agent,
        })

        retry = Retry(
            total=self.cfg.retries,
            backoff_factor=self.cfg.backoff,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset({"GET", "HEAD", "OPTIONS"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=20, pool_maxsize=50)
        sess.mount("https://", adapter)
        sess.mount("http://", adapter)
        return sess

    def _auth_headers(self) -> Dict[str, str]:
        token = self.tokens.acquire(self.cfg.credentials)
        return {"Authorization": f"Bearer {token.value}"}

    # ---------------- helpers ----------------

    def _url(self, path: str) -> str:
        if path.startswith("https://") or path.startswith("http://"):
            return path
        return f"{self.base}{path.lstrip('/')}"

    def _extract_graph_error(self, r: Response) -> str:
        try:
            data = r.json()
        except ValueError:
            return r.text
        if not isinstance(data, dict):
            return r.text
        err = data.get("error")
        if not isinstance(err, dict):
            return r.text

        code = err.get("code")
        message = err.get("message")
        inner = err.get("innerError") or err.get("innererror")
        request_id = inner.get("request-id") if isinstance(inner, dict) else None

        parts = []
        if code:
            parts.append(f"code={code}")
        if message:
            parts.append(f"message={message}")
        if request_id:
            parts.append(f"request-id={request_id}")
        return " | ".join(parts) or r.text

    def _raise_for_error(self, r: Response, url: str) -> None:
        if r.status_code >= 400:
            body = self._extract_graph_error(r)
            raise UpstreamDataError(r.status_code, body, url, dict(r.headers))

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, str]] = None,
    ) -> Response:
        headers = self._auth_headers()
        t0 = time.perf_counter()
        try:
            r = self.session.request(
                method=method,
                url=url,
                params=params,
                headers=headers,
                timeout=self.timeout,
                verify=self.verify,
            )
        except requests.RequestException as e:
            raise UpstreamDataError(0, str(e), url) from e
        self._raise_for_error(r, url)
        dt = (time.perf_counter() - t0) * 1000.0
        self.logger.debug("%s %s %sms", method.upper(), url, round(dt, 1))
        return r

    def _json(self, r: Response, url: str) -> Dict[str, Any]:
        try:
            data = r.json()
        except ValueError as e:
            raise UpstreamDataError(r.status_code, r.text, url, dict(r.headers)) from e
        if not isinstance(data, dict):
            raise UpstreamDataError(r.status_code, r.text, url, dict(r.headers))
        return data

    # ---------------- public ops ----------------

    def get(self, path: str, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """
        Execute a GET request against a Graph path.

        Parameters
        ----------
        path : str
            Path relative to the Graph root, or an absolute URL
        params : dict, optional
            Query parameters

        Returns
        -------
        dict
            Parsed JSON response

        Raises
        ------
        UpstreamDataError
            For transport failures, HTTP errors or non-JSON bodies
        """
        url = self._url(path)
        r = self._request("GET", url, params=params)
        return self._json(r, url)

    def iterate(
        self,
        path: str,
        params: Optional[Dict[str, str]] = None,
        *,
        max_pages: Optional[int] = None,
    ) -> Generator[List[Dict[str, Any]], None, None]:
        """
        Iterate through pages of a Graph collection.

        Yields each page's ``value`` list, following ``@odata.nextLink``.
        """
        p = self.get(path, params)
        yielded = 0
        first = p.get("value") or []
        if first:
            yield first
            yielded += 1
            if max_pages is not None and yielded >= int(max_pages):
                return

        next_link = p.get("@odata.nextLink")
        seen = set()

        while next_link:
            if next_link in seen:
                return
            seen.add(next_link)

            p = self.get(next_link)
            chunk = p.get("value") or []
            if chunk:
                yield chunk
                yielded += 1
                if max_pages is not None and yielded >= int(max_pages):
                    return

            next_link = p.get("@odata.nextLink")

    def get_all(
        self,
        path: str,
        params: Optional[Dict[str, str]] = None,
        *,
        max_pages: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Read all pages of a Graph collection into a single list."""
        out: List[Dict[str, Any]] = []
        for page in self.iterate(path, params, max_pages=max_pages):
            out.extend(page)
        return out
