from __future__ import annotations

"""Lightweight HTTP client utils with retry.

Uses stdlib urllib; callers get either the decoded payload or an HttpError.
"""
import json
import time
import urllib.request
import urllib.error
from typing import Any, Dict, Optional, Tuple


class HttpError(Exception):
    pass


def _get(url: str, *, timeout: float) -> Tuple[bytes, str]:
    with urllib.request.urlopen(url, timeout=timeout) as resp:  # nosec B310
        if resp.status >= 400:
            raise HttpError(f"HTTP {resp.status} for {url}")
        content_type = resp.headers.get("Content-Type") or ""
        return resp.read(), content_type


def get_json(
    url: str, *, timeout: float = 5.0, retries: int = 2, backoff: float = 0.5
) -> Dict[str, Any]:
    last_err: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            data, _ = _get(url, timeout=timeout)
            return json.loads(data.decode("utf-8"))
        except (
            urllib.error.URLError,
            TimeoutError,
            HttpError,
            ValueError,
        ) as e:  # ValueError for JSON decode
            last_err = e
            if attempt == retries:
                break
            time.sleep(backoff * (2**attempt))
    raise HttpError(f"Failed to fetch JSON from {url}: {last_err}")


def get_bytes(url: str, *, timeout: float = 10.0) -> Tuple[bytes, str]:
    """Single bounded GET returning (body, content type). No retries."""
    try:
        return _get(url, timeout=timeout)
    except (urllib.error.URLError, TimeoutError, OSError) as e:
        raise HttpError(f"Failed to fetch {url}: {e}") from e
