"""Receipt fetch collaborators for the archive export.

Receipt ids are either full http(s) URLs (blob storage) or opaque blob names
stored under the local receipts directory.
"""

from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence
from urllib.parse import urlparse

from .http_client import HttpError, get_bytes

logger = logging.getLogger("expensehub.receipts")


class ReceiptFetchError(Exception):
    pass


@dataclass(frozen=True)
class FetchedReceipt:
    content: bytes
    content_type: str


class ReceiptFetcher(Protocol):
    def fetch(self, receipt_id: str) -> FetchedReceipt: ...


def extension_for(content_type: str) -> str:
    """Archive file extension for a receipt content type (jpg if unknown)."""
    content_type = (content_type or "").lower()
    if "png" in content_type:
        return "png"
    if "pdf" in content_type:
        return "pdf"
    return "jpg"


def is_url(receipt_id: str) -> bool:
    return urlparse(receipt_id).scheme in ("http", "https")


class HttpReceiptFetcher:
    def __init__(self, timeout: float = 10.0, allowed_hosts: Sequence[str] = ()):
        self._timeout = timeout
        self._allowed_hosts = tuple(h.lower() for h in allowed_hosts)

    def _host_allowed(self, host: str) -> bool:
        if not self._allowed_hosts:
            return True
        return any(host == h or host.endswith("." + h) for h in self._allowed_hosts)

    def fetch(self, receipt_id: str) -> FetchedReceipt:
        host = (urlparse(receipt_id).hostname or "").lower()
        if not self._host_allowed(host):
            raise ReceiptFetchError(f"receipt host '{host}' is not allowed")
        try:
            content, content_type = get_bytes(receipt_id, timeout=self._timeout)
        except HttpError as e:
            raise ReceiptFetchError(str(e)) from e
        return FetchedReceipt(content=content, content_type=content_type or "image/jpeg")


class LocalReceiptStore:
    def __init__(self, root: Path):
        self._root = Path(root)

    def path_for(self, receipt_id: str) -> Path:
        root = self._root.resolve()
        path = (root / receipt_id).resolve()
        if root not in path.parents:
            raise ReceiptFetchError(f"invalid receipt id '{receipt_id}'")
        return path

    def fetch(self, receipt_id: str) -> FetchedReceipt:
        path = self.path_for(receipt_id)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise ReceiptFetchError(f"receipt '{receipt_id}' unavailable: {e}") from e
        content_type, _ = mimetypes.guess_type(path.name)
        return FetchedReceipt(content=content, content_type=content_type or "image/jpeg")

    def save(self, receipt_id: str, content: bytes) -> Path:
        if is_url(receipt_id):
            raise ReceiptFetchError(f"invalid receipt id '{receipt_id}'")
        path = self.path_for(receipt_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        logger.info("stored receipt %s (%d bytes)", receipt_id, len(content))
        return path


class DefaultReceiptFetcher:
    """Dispatch URLs to HTTP and everything else to the local store."""

    def __init__(
        self,
        receipts_dir: Path,
        timeout: float = 10.0,
        allowed_hosts: Sequence[str] = (),
        http: Optional[HttpReceiptFetcher] = None,
    ):
        self._http = http or HttpReceiptFetcher(timeout, allowed_hosts)
        self._local = LocalReceiptStore(receipts_dir)

    def fetch(self, receipt_id: str) -> FetchedReceipt:
        if is_url(receipt_id):
            return self._http.fetch(receipt_id)
        return self._local.fetch(receipt_id)
