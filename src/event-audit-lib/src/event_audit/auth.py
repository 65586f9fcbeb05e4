"""
event_audit.auth — HTTP Basic authentication for the Spinnaker echo webhook.

Echo is configured with a static username/password pair; the same pair is
held in AuditConfig. Comparison is exact string equality.
"""

from __future__ import annotations

import base64
import binascii

from aws_lambda_powertools import Logger

from event_audit.exceptions import AuthError

logger = Logger(service="event-audit-auth")

_BASIC_PREFIX = "Basic "


def decode_basic_auth(authorization: str) -> tuple[str, str]:
    """Return (username, password) from a Basic Authorization header value.

    Raises AuthError when the value is not valid base64, not UTF-8, or
    carries no ":" separator.
    """
    encoded = authorization.replace(_BASIC_PREFIX, "", 1)
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise AuthError("Invalid credentials") from exc

    username, sep, password = decoded.partition(":")
    if not sep:
        raise AuthError("Invalid credentials")
    return username, password


def verify_basic_auth(authorization: str, *, username: str, password: str) -> None:
    """Raise AuthError unless the header carries exactly username:password."""
    try:
        given_user, given_password = decode_basic_auth(authorization or "")
    except AuthError:
        logger.warning("Malformed Basic Authorization header")
        raise

    if given_user != username or given_password != password:
        logger.warning("Basic auth credentials rejected")
        raise AuthError("Invalid credentials")
