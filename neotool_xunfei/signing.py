"""HMAC-SHA256 request signing for Xunfei websocket endpoints."""

from __future__ import annotations

import base64
import hashlib
import hmac
from datetime import datetime
from email.utils import format_datetime
from urllib.parse import SplitResult, urlencode, urlsplit, urlunsplit

from neotool_xunfei.errors import FormatError, UrlError
from neotool_xunfei.types import SignedUrl


def format_rfc2822(timestamp: datetime) -> str:
    """Render an aware timestamp like `Fri, 05 May 2023 02:43:39 +0000`."""
    if timestamp.tzinfo is None or timestamp.utcoffset() is None:
        raise FormatError(f"Timestamp {timestamp.isoformat()} has no UTC offset.")
    if not 1900 <= timestamp.year <= 9999:
        raise FormatError(f"Year {timestamp.year} cannot be rendered in RFC-2822 form.")
    return format_datetime(timestamp)


def _split_target(target_url: str) -> tuple[SplitResult, str, str]:
    """Parse the target and return it with its host and request path."""
    try:
        parts: SplitResult = urlsplit(target_url)
        hostname: str | None = parts.hostname
        _ = parts.port
    except ValueError as error:
        raise UrlError(f"Invalid target URL {target_url!r}: {error}") from error

    if not parts.scheme or not parts.netloc:
        raise UrlError(f"Target URL {target_url!r} is not absolute.")
    if not hostname:
        raise UrlError(f"Target URL {target_url!r} has no host.")

    host: str = f"[{hostname}]" if ":" in hostname else hostname
    return parts, host, parts.path or "/"


def build_signature(host: str, date: str, path: str, api_secret: str) -> str:
    """Return the base64 HMAC-SHA256 of the signed header lines."""
    header: str = f"host: {host}\ndate: {date}\nGET {path} HTTP/1.1"
    digest: bytes = hmac.new(
        api_secret.encode("utf-8"),
        header.encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def build_authorization(api_key: str, signature: str) -> str:
    """Return the base64 credential string sent as the `authorization` parameter."""
    credential: str = (
        f'api_key="{api_key}", algorithm="hmac-sha256", '
        f'headers="host date request-line", signature="{signature}"'
    )
    return base64.b64encode(credential.encode("utf-8")).decode("ascii")


def sign(target_url: str, api_secret: str, api_key: str, timestamp: datetime) -> SignedUrl:
    """Sign ``target_url`` and append `authorization`, `date` and `host` to its query.

    The output depends only on the inputs: identical arguments produce a
    byte-identical URL.
    """
    parts, host, path = _split_target(target_url)
    date: str = format_rfc2822(timestamp)
    signature: str = build_signature(host, date, path, api_secret)
    authorization: str = build_authorization(api_key, signature)

    params: str = urlencode([("authorization", authorization), ("date", date), ("host", host)])
    query: str = f"{parts.query}&{params}" if parts.query else params
    url: str = urlunsplit((parts.scheme, parts.netloc, path, query, parts.fragment))
    return SignedUrl(url=url, authorization=authorization, date=date, host=host)
