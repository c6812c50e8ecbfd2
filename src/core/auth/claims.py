"""
Expiry-claim decoding for JWT-shaped bearer tokens.

Only the payload segment is inspected; signatures are not verified because
the token is opaque to this layer and is validated by the resource server.
"""

import base64
import binascii
import json
import logging
from datetime import UTC, datetime

logger = logging.getLogger(__name__)


def decode_expiry(token: str) -> datetime | None:
    """
    Extract the ``exp`` claim from a dot-separated token.

    Args:
        token: Bearer token, typically header.payload.signature

    Returns:
        UTC expiry timestamp, or None when the token has no decodable
        numeric ``exp`` claim
    """
    parts = token.split(".")
    if len(parts) < 2 or not parts[1]:
        return None

    payload = parts[1]
    padded = payload + "=" * (-len(payload) % 4)

    try:
        data = json.loads(base64.urlsafe_b64decode(padded))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        logger.debug(f"Unable to decode token expiry, falling back to default TTL: {e}")
        return None

    if not isinstance(data, dict):
        return None

    exp = data.get("exp")
    # bool is an int subclass but never a valid timestamp
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None

    try:
        return datetime.fromtimestamp(exp, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


__all__ = ["decode_expiry"]
