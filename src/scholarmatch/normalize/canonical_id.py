from __future__ import annotations

import hashlib
from urllib.parse import urlparse

from scholarmatch.deadlines import parse_deadline


def _normalize_text(value: str | None) -> str:
    if value is None:
        return ""
    return " ".join(value.strip().lower().split())


def _normalize_deadline(deadline: str | None) -> str:
    # Same day written in different formats must hash the same.
    parsed = parse_deadline(deadline)
    if parsed is None:
        return _normalize_text(deadline)
    return parsed.isoformat()


def _normalize_official_domain(official_url: str | None) -> str:
    if not official_url:
        return ""

    host = urlparse(official_url.strip()).netloc.lower()
    return host.removeprefix("www.")


def generate_scholarship_id(
    *,
    name: str,
    deadline: str | None,
    official_url: str | None,
) -> str:
    """Build a deterministic id for scholarship records that arrive without one."""

    payload = "|".join(
        [
            _normalize_text(name),
            _normalize_deadline(deadline),
            _normalize_official_domain(official_url),
        ]
    )
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()
