"""
xl_odata.core.token - Upstream access token cache
==================================================

Holds one Microsoft Graph access token obtained with the OAuth2
client-credentials grant and refreshes it only when it is missing or
about to expire.

Refresh is single-flight: when several request threads find the slot empty
or stale at the same time, exactly one of them performs the exchange and
the others reuse its result, or share its failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional
import logging
import time

import requests

from xl_odata.core.errors import ConfigurationError, UpstreamAuthError
from xl_odata.core.flight import SingleFlight

DEFAULT_AUTHORITY = "https://login.microsoftonline.com"
DEFAULT_SCOPE = "https://graph.microsoft.com/.default"

# Seconds shaved off the advertised lifetime
EXPIRY_MARGIN = 300


@dataclass(frozen=True)
class AccessToken:
    """
    An upstream bearer token and the epoch second after which it is unusable.
    """
    value: str
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class GraphCredentials:
    """
    Client-credentials identity of the service in Microsoft Entra ID.

    Parameters
    ----------
    tenant_id : str
        Directory (tenant) id
    client_id : str
        Application (client) id
    client_secret : str
        Client secret value
    """
    tenant_id: str
    client_id: str
    client_secret: str

    def missing(self) -> list:
        return [
            name
            for name in ("tenant_id", "client_id", "client_secret")
            if not getattr(self, name)
        ]


class TokenCache:
    """
    Process-wide cache for a single client-credentials access token.

    Construct one instance at startup and share it; ``reset()`` empties the
    slot.

    Parameters
    ----------
    scope : str
        OAuth2 scope requested in the exchange
    authority : str
        Identity provider root; the token endpoint is
        ``{authority}/{tenant_id}/oauth2/v2.0/token``
    http : requests.Session, optional
        Session used for the exchange call
    timeout : float
        Exchange request timeout in seconds
    clock : callable
        Returns the current epoch time in seconds

    Examples
    --------
    >>> cache = TokenCache()
    >>> creds = GraphCredentials("tenant", "client", "secret")
    >>> token = cache.acquire(creds)
    >>> headers = {"Authorization": f"Bearer {token.value}"}
    """

    def __init__(
        self,
        scope: str = DEFAULT_SCOPE,
        *,
        authority: str = DEFAULT_AUTHORITY,
        http: Optional[requests.Session] = None,
        timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.scope = scope
        self.authority = authority.rstrip("/")
        self._owns_http = http is None
        self.http = http or requests.Session()
        self.timeout = timeout
        self.clock = clock
        self.logger = logging.getLogger("xl_odata.token")

        self._token: Optional[AccessToken] = None
        self._flight: SingleFlight[AccessToken] = SingleFlight()

    def token_endpoint(self, tenant_id: str) -> str:
        return f"{self.authority}/{tenant_id}/oauth2/v2.0/token"

    def peek(self) -> Optional[AccessToken]:
        """Return the cached token, valid or not, without refreshing."""
        return self._token

    def reset(self) -> None:
        """Drop the cached token so the next ``acquire`` exchanges again."""
        self._token = None

    def close(self) -> None:
        """Close the HTTP session if this cache created it."""
        if self._owns_http:
            self.http.close()

    def acquire(self, credentials: GraphCredentials) -> AccessToken:
        """
        Return a usable access token, exchanging credentials if needed.

        Parameters
        ----------
        credentials : GraphCredentials
            Tenant, client id and secret

        Returns
        -------
        AccessToken
            The cached token when still valid, otherwise a fresh one

        Raises
        ------
        ConfigurationError
            If any credential field is empty
        UpstreamAuthError
            If the exchange fails for any reason
        """
        missing = credentials.missing()
        if missing:
            raise ConfigurationError(
                "Missing Graph credentials: " + ", ".join(missing)
            )

        token = self._token
        if token is not None and token.is_valid(self.clock()):
            return token

        def refresh() -> AccessToken:
            # Another request may have refreshed since the check above
            current = self._token
            if current is not None and current.is_valid(self.clock()):
                self.logger.debug("Using access token refreshed by another request")
                return current
            fresh = self._exchange(credentials)
            self._token = fresh
            return fresh

        return self._flight.run(refresh)

    def _exchange(self, credentials: GraphCredentials) -> AccessToken:
        url = self.token_endpoint(credentials.tenant_id)
        form = {
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "scope": self.scope,
            "grant_type": "client_credentials",
        }

        self.logger.info("Requesting new access token from identity provider")
        issued_at = self.clock()
        try:
            r = self.http.post(
                url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self.logger.error("Token request to %s failed: %s", url, e)
            raise UpstreamAuthError("authentication failed") from e

        if r.status_code >= 400:
            self.logger.error(
                "Token request to %s returned %s: %s",
                url, r.status_code, (r.text or "")[:1200],
            )
            raise UpstreamAuthError("authentication failed")

        try:
            data = r.json()
            value = data["access_token"]
            expires_in = int(data["expires_in"])
        except (ValueError, KeyError, TypeError) as e:
            self.logger.error("Malformed token response from %s: %s", url, e)
            raise UpstreamAuthError("authentication failed") from e

        token = AccessToken(value=value, expires_at=issued_at + expires_in - EXPIRY_MARGIN)
        self.logger.info(
            "Obtained access token, valid for %ss", expires_in - EXPIRY_MARGIN
        )
        return token
