"""
Shared-secret access gate for TagSoft.

Every API operation except health passes through AccessGate.authorize()
before the store or aggregator is touched.

Invariants:
    - One process-wide secret; no per-account keys, expiry or rotation
    - Comparison is byte-for-byte and constant-time against the UTF-8
      encoded secret; header text is turned back into its wire bytes first
    - Only mask_credential() output is ever logged or attached to errors
"""

from __future__ import annotations

import hmac
import logging

from .errors import Unauthorized

logger = logging.getLogger(__name__)

MASK = "***"
ELLIPSIS = "..."
VISIBLE_CHARS = 3


def mask_credential(credential: str | None) -> str:
    """Mask a credential for diagnostics.

    >>> mask_credential("abc")
    '***'
    >>> mask_credential("sk_live_1234")
    'sk_...234'
    """
    if not credential:
        return "<missing>"
    if len(credential) <= 2 * VISIBLE_CHARS:
        return MASK
    return f"{credential[:VISIBLE_CHARS]}{ELLIPSIS}{credential[-VISIBLE_CHARS:]}"


def credential_bytes(credential: str) -> bytes:
    """Recover the bytes a credential was sent as.

    HTTP header values reach us decoded as latin-1, which maps each raw byte
    to one character, so encoding back to latin-1 restores the wire bytes.
    Text with characters outside latin-1 cannot have come from a header and
    is taken as UTF-8.
    """
    try:
        return credential.encode("latin-1")
    except UnicodeEncodeError:
        return credential.encode("utf-8")


class AccessGate:
    """Checks a supplied credential against the configured secret.

    Args:
        secret: The shared API key
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("secret must not be empty")
        self._secret = secret.encode("utf-8")

    def authorize(self, credential: str | None) -> None:
        """Return quietly when the credential matches.

        Raises:
            Unauthorized: If the credential is absent or different
        """
        if credential and hmac.compare_digest(credential_bytes(credential), self._secret):
            return
        masked = mask_credential(credential)
        logger.warning(f"Rejected API key {masked}")
        raise Unauthorized(masked_credential=masked)
