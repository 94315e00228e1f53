"""
Request signer for the SolisCloud platform API.

Every API call is a POST whose body is hashed (Content-MD5) and whose
canonical string is signed with HMAC-SHA1 over the account's API secret:

    POST\n{content_md5}\napplication/json\n{date}\n{path}

Both the hash and the signature are base64 encoded. All functions here are
pure except :func:`gmt_now`, which reads the clock.

CHANGELOG:
- 2026-10-18: Initial creation
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from datetime import UTC, datetime
from email.utils import format_datetime

CONTENT_TYPE = "application/json"
"""Content type as it appears inside the canonical string."""

HEADER_CONTENT_TYPE = "application/json;charset=UTF-8"
"""Content type as it is sent on the wire."""


def content_md5(body: bytes) -> str:
    """Return the base64-encoded MD5 digest of *body*."""
    return base64.b64encode(hashlib.md5(body).digest()).decode("ascii")  # noqa: S324


def gmt_now() -> str:
    """Return the current time in RFC 1123 form, e.g. ``Mon, 05 Feb 2024 10:00:00 GMT``."""
    return format_datetime(datetime.now(tz=UTC), usegmt=True)


def sign(
    secret: str,
    *,
    method: str,
    content_md5: str,
    content_type: str,
    date: str,
    path: str,
) -> str:
    """Sign the canonical request string with HMAC-SHA1.

    Args:
        secret: API secret. Must not be empty.
        method: HTTP method, upper case.
        content_md5: Base64 MD5 of the request body.
        content_type: Content type used in the canonical string.
        date: RFC 1123 GMT timestamp, identical to the ``Date`` header.
        path: Request path, e.g. ``/v1/api/stationDetailList``.

    Returns:
        The base64-encoded signature.

    Raises:
        ValueError: If *secret* is empty.
    """
    if not secret:
        raise ValueError("API secret must not be empty")
    canonical = "\n".join((method, content_md5, content_type, date, path))
    digest = hmac.new(
        secret.encode("utf-8"),
        canonical.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def signed_headers(
    api_key: str,
    api_secret: str,
    body: bytes,
    path: str,
    date: str | None = None,
) -> dict[str, str]:
    """Build the full header set for a signed POST.

    Args:
        api_key: API key id, sent in the ``Authorization`` header.
        api_secret: API secret used for signing.
        body: Exact bytes that will be sent as the request body.
        path: Request path.
        date: Timestamp override; defaults to :func:`gmt_now`.

    Returns:
        Headers dict with Content-Type, Authorization, Content-MD5 and Date.
    """
    date = date or gmt_now()
    md5 = content_md5(body)
    signature = sign(
        api_secret,
        method="POST",
        content_md5=md5,
        content_type=CONTENT_TYPE,
        date=date,
        path=path,
    )
    return {
        "Content-Type": HEADER_CONTENT_TYPE,
        "Authorization": f"API {api_key}:{signature}",
        "Content-MD5": md5,
        "Date": date,
    }
