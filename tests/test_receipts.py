from __future__ import annotations

import pytest

from expensehub.services import receipts as receipts_mod
from expensehub.services.http_client import HttpError
from expensehub.services.receipts import (
    DefaultReceiptFetcher,
    FetchedReceipt,
    HttpReceiptFetcher,
    LocalReceiptStore,
    ReceiptFetchError,
    extension_for,
)


@pytest.mark.parametrize(
    "content_type,ext",
    [
        ("image/png", "png"),
        ("application/pdf", "pdf"),
        ("image/jpeg", "jpg"),
        ("image/jpg; charset=binary", "jpg"),
        ("", "jpg"),
        ("image/webp", "jpg"),
    ],
)
def test_extension_for(content_type, ext):
    assert extension_for(content_type) == ext


class TestLocalReceiptStore:

    def test_reads_file_with_guessed_type(self, tmp_path):
        (tmp_path / "2025").mkdir()
        (tmp_path / "2025" / "scan.pdf").write_bytes(b"%PDF")
        receipt = LocalReceiptStore(tmp_path).fetch("2025/scan.pdf")
        assert receipt == FetchedReceipt(b"%PDF", "application/pdf")

    def test_unknown_suffix_is_jpeg(self, tmp_path):
        (tmp_path / "blob-123").write_bytes(b"x")
        assert LocalReceiptStore(tmp_path).fetch("blob-123").content_type == "image/jpeg"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ReceiptFetchError):
            LocalReceiptStore(tmp_path).fetch("nope.png")

    def test_path_traversal_rejected(self, tmp_path):
        store = LocalReceiptStore(tmp_path / "receipts")
        with pytest.raises(ReceiptFetchError, match="invalid receipt id"):
            store.fetch("../secrets.txt")

    def test_save_then_fetch(self, tmp_path):
        store = LocalReceiptStore(tmp_path)
        path = store.save("2025/03/taxi.png", b"png")
        assert path == tmp_path.resolve() / "2025" / "03" / "taxi.png"
        assert store.fetch("2025/03/taxi.png") == FetchedReceipt(b"png", "image/png")

    @pytest.mark.parametrize("receipt_id", ["../escape.png", "https://blob.example/r.png"])
    def test_save_rejects_foreign_ids(self, tmp_path, receipt_id):
        with pytest.raises(ReceiptFetchError, match="invalid receipt id"):
            LocalReceiptStore(tmp_path / "receipts").save(receipt_id, b"x")
        assert not (tmp_path / "escape.png").exists()


class TestHttpReceiptFetcher:

    def test_host_not_allowed(self):
        fetcher = HttpReceiptFetcher(allowed_hosts=["blob.core.windows.net"])
        with pytest.raises(ReceiptFetchError, match="not allowed"):
            fetcher.fetch("https://evil.example.com/r.png")

    def test_allowed_subdomain(self, monkeypatch):
        monkeypatch.setattr(
            receipts_mod, "get_bytes", lambda url, timeout: (b"img", "image/png")
        )
        fetcher = HttpReceiptFetcher(allowed_hosts=["blob.core.windows.net"])
        receipt = fetcher.fetch("https://acct.blob.core.windows.net/c/r.png")
        assert receipt == FetchedReceipt(b"img", "image/png")

    def test_http_error_becomes_fetch_error(self, monkeypatch):
        def boom(url, timeout):
            raise HttpError("HTTP 404")

        monkeypatch.setattr(receipts_mod, "get_bytes", boom)
        with pytest.raises(ReceiptFetchError, match="404"):
            HttpReceiptFetcher().fetch("https://example.com/r.png")


def test_default_fetcher_dispatch(tmp_path):
    class StubHttp:
        def fetch(self, receipt_id):
            return FetchedReceipt(receipt_id.encode(), "image/png")

    (tmp_path / "local.png").write_bytes(b"local")
    fetcher = DefaultReceiptFetcher(tmp_path, http=StubHttp())
    assert fetcher.fetch("https://x.test/a.png").content == b"https://x.test/a.png"
    assert fetcher.fetch("local.png").content == b"local"
