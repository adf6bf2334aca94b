"""
xl_odata.api.auth - Static bearer token gate
=============================================

The document-automation client can only send a fixed
``Authorization: Bearer <token>`` header, so inbound requests are checked
against one configured secret. This is unrelated to the Graph access token.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
import hmac
import logging

from xl_odata.core.errors import XlODataError

logger = logging.getLogger("xl_odata.auth")


class RejectReason(Enum):
    MISSING_TOKEN = ("MissingToken", 401, "Authentication required")
    INVALID_TOKEN = ("InvalidToken", 403, "Invalid token")

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def status_code(self) -> int:
        return self.value[1]

    @property
    def message(self) -> str:
        return self.value[2]


@dataclass(frozen=True)
class Authorized:
    pass


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason


Decision = Union[Authorized, Rejected]


def extract_bearer(header_value: Optional[str]) -> Optional[str]:
    """
    Return the token part of an ``Authorization`` header value.

    The value is split on whitespace; the first part must be the
    ``Bearer`` scheme (any case) and the second part is taken, so
    ``"Bearer abc"`` yields ``"abc"``. Any other scheme, or a value
    without a second part, yields None.
    """
    if not header_value:
        return None
    parts = header_value.split()
    if len(parts) < 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


class BearerGate:
    """
    Checks inbound bearer tokens against a static secret.

    An empty secret rejects every token.

    Parameters
    ----------
    secret : str
        The configured token (API_BEARER_TOKEN)

    Examples
    --------
    >>> gate = BearerGate("right")
    >>> gate.authorize("Bearer right")
    Authorized()
    >>> gate.authorize("Bearer wrong")
    Rejected(reason=<RejectReason.INVALID_TOKEN: ('InvalidToken', 403, 'Invalid token')>)
    """

    def __init__(self, secret: str) -> None:
        self._secret = secret or ""

    def authorize(self, header_value: Optional[str]) -> Decision:
        token = extract_bearer(header_value)
        if token is None:
            logger.warning("Authentication failed: no token provided")
            return Rejected(RejectReason.MISSING_TOKEN)

        if not self._secret or not hmac.compare_digest(
            token.encode("utf-8"), self._secret.encode("utf-8")
        ):
            logger.warning("Authentication failed: invalid token")
            return Rejected(RejectReason.INVALID_TOKEN)

        return Authorized()


class AuthRejectedError(XlODataError):
    """Raised at the HTTP boundary for a rejected inbound token."""

    def __init__(self, reason: RejectReason) -> None:
        super().__init__(reason.message)
        self.reason = reason
        self.code = reason.code
        self.status_code = reason.status_code
        self.public_message = reason.message
