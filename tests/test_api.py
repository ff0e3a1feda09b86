"""
End-to-end tests through the HTTP API against a temporary SQLite database.
"""

from __future__ import annotations

import zipfile
from datetime import date
from io import BytesIO

import pytest
from openpyxl import load_workbook

from conftest import FakeReceiptFetcher
from expensehub.routers.deps import get_receipt_fetcher
from expensehub.services.receipts import FetchedReceipt

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _create_report(client, title="January", month=1, year=2025) -> str:
    resp = client.post("/reports/", json={"title": title, "month": month, "year": year})
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def _add_line(client, report_id, **fields) -> dict:
    payload = {
        "date": "2025-01-10",
        "type": "OTHER",
        "description": "Misc",
        "amount": 10.0,
    }
    payload.update(fields)
    resp = client.post(f"/reports/{report_id}/expenses", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestBasics:

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "ok"

    def test_unknown_route(self, client):
        resp = client.get("/nope")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    def test_request_id_header(self, client):
        resp = client.get("/health", headers={"X-Request-ID": "abc"})
        assert resp.headers["X-Request-ID"] == "abc"


class TestReports:

    def test_create_and_get(self, client):
        report_id = _create_report(client)
        body = client.get(f"/reports/{report_id}").json()
        assert body["title"] == "January"
        assert body["status"] == "draft"
        assert body["line_count"] == 0

    def test_totals_follow_lines(self, client):
        report_id = _create_report(client)
        _add_line(client, report_id, amount=10.0)
        _add_line(client, report_id, amount=2.5)
        body = client.get(f"/reports/{report_id}").json()
        assert body["line_count"] == 2
        assert body["total_amount"] == 12.5

    def test_list_filters(self, client):
        _create_report(client, month=1)
        _create_report(client, title="Feb", month=2)
        titles = [r["title"] for r in client.get("/reports/", params={"month": 2}).json()]
        assert titles == ["Feb"]

    def test_status_change(self, client):
        report_id = _create_report(client)
        resp = client.patch(f"/reports/{report_id}/status", json={"status": "submitted"})
        assert resp.json()["status"] == "submitted"
        bad = client.patch(f"/reports/{report_id}/status", json={"status": "lost"})
        assert bad.status_code == 422
        assert bad.json()["error"] == "validation_error"

    def test_missing_report(self, client):
        resp = client.get("/reports/missing")
        assert resp.status_code == 404
        assert resp.json() == {"error": "not_found", "detail": "report not found"}
        assert client.patch("/reports/missing/status", json={"status": "approved"}).status_code == 404

    def test_delete_cascades(self, client):
        report_id = _create_report(client)
        _add_line(client, report_id)
        assert client.delete(f"/reports/{report_id}").status_code == 204
        assert client.get(f"/reports/{report_id}/expenses").status_code == 404


class TestExpenseLines:

    def test_add_normalizes_fields(self, client):
        report_id = _create_report(client)
        line = _add_line(
            client,
            report_id,
            date="2025-01-10T08:30:00Z",
            type="fuel",
            currency="usd",
            metadata={"type": "FUEL", "data": {"distance": 30}},
            receiptId="blob-1",
        )
        assert line["date"] == "2025-01-10"
        assert line["type"] == "FUEL"
        assert line["currency"] == "USD"
        assert line["receiptId"] == "blob-1"
        assert line["metadata"] == {"type": "FUEL", "data": {"distance": 30}}

    def test_currency_defaults_to_eur(self, client):
        report_id = _create_report(client)
        assert _add_line(client, report_id)["currency"] == "EUR"

    @pytest.mark.parametrize(
        "label, stored",
        [("Pranzo", "LUNCH"), ("carburante", "FUEL"), ("Tassa di soggiorno", "TOURIST_TAX")],
    )
    def test_italian_type_labels_are_stored_canonical(self, client, label, stored):
        report_id = _create_report(client)
        assert _add_line(client, report_id, type=label)["type"] == stored

    @pytest.mark.parametrize(
        "fields",
        [
            {"type": "SPACESHIP"},
            {"amount": 0},
            {"amount": -5},
            {"description": "   "},
            {"currency": "EURO"},
        ],
    )
    def test_invalid_lines(self, client, fields):
        report_id = _create_report(client)
        payload = {"date": "2025-01-10", "type": "OTHER", "description": "x", "amount": 1.0}
        payload.update(fields)
        resp = client.post(f"/reports/{report_id}/expenses", json=payload)
        assert resp.status_code == 422

    def test_add_to_missing_report(self, client):
        resp = client.post(
            "/reports/missing/expenses",
            json={"date": "2025-01-10", "type": "OTHER", "description": "x", "amount": 1.0},
        )
        assert resp.status_code == 404

    def test_patch_and_delete(self, client):
        report_id = _create_report(client)
        line = _add_line(client, report_id)
        resp = client.patch(
            f"/reports/{report_id}/expenses/{line['id']}",
            json={"amount": 42.0, "metadata": {"customer": "ACME"}},
        )
        assert resp.status_code == 200
        assert resp.json()["amount"] == 42.0
        assert resp.json()["description"] == "Misc"
        assert resp.json()["metadata"] == {"customer": "ACME"}

        empty = client.patch(f"/reports/{report_id}/expenses/{line['id']}", json={})
        assert empty.status_code == 422
        cleared = client.patch(f"/reports/{report_id}/expenses/{line['id']}", json={"amount": None})
        assert cleared.status_code == 400

        assert client.delete(f"/reports/{report_id}/expenses/{line['id']}").status_code == 204
        assert client.delete(f"/reports/{report_id}/expenses/{line['id']}").status_code == 404
        assert client.get(f"/reports/{report_id}/expenses").json() == []


class TestRatesApi:

    def test_defaults(self, client):
        body = client.get("/rates").json()
        assert body["rates"]["USD"] == 1.1
        assert body["last_updated"] is None
        assert body["age"] == "Never updated"

    def test_refresh_static(self, client):
        body = client.post("/rates/refresh").json()
        assert body["source"] == "static"

    def test_manual_override(self, client):
        body = client.put("/rates/usd", json={"rate": 1.25}).json()
        assert body["rates"]["USD"] == 1.25
        assert body["source"] == "manual"
        assert body["age"] == "Just now"

    def test_manual_override_errors(self, client):
        assert client.put("/rates/EUR", json={"rate": 2.0}).status_code == 400
        assert client.put("/rates/USD", json={"rate": 0}).status_code == 422


class TestExportApi:

    def test_spreadsheet_download(self, client):
        report_id = _create_report(client)
        _add_line(client, report_id, date="2025-01-12", amount=100.0)
        _add_line(
            client,
            report_id,
            date="2025-01-11",
            type="FUEL",
            description="Gas",
            amount=55.0,
            metadata={"startLocation": "Milan", "endLocation": "Rome", "roundtrip": True, "distance": 125},
        )
        resp = client.post(
            "/export/spreadsheet", json={"report_ids": [report_id], "target_currency": "usd"}
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"] == XLSX
        expected_name = f"Expenses_USD_{date.today().isoformat()}.xlsx"
        assert expected_name in resp.headers["content-disposition"]

        ws = load_workbook(BytesIO(resp.content)).active
        assert ws["A1"].value.startswith("Exchange rates: Using default values")
        rows = list(ws.iter_rows(min_row=3, values_only=True))
        assert rows[0] == (
            "01/11/2025", "FUEL", "Gas - Milan - Rome - roundtrip", "Expert.AI",
            "EUR", 55.0, 1.1, "USD", 60.5, 125,
        )
        assert rows[1][8] == 110.0
        assert rows[-1][2] == "TOTAL"
        assert rows[-1][8] == 170.5

    def test_banner_uses_stored_timestamp(self, client):
        client.put("/rates/USD", json={"rate": 1.2})
        resp = client.post("/export/spreadsheet", json={"report_ids": [], "target_currency": "EUR"})
        ws = load_workbook(BytesIO(resp.content)).active
        assert ws["A1"].value.startswith("Exchange rates last updated: ")

    def test_unknown_report(self, client):
        resp = client.post("/export/spreadsheet", json={"report_ids": ["missing"], "target_currency": "EUR"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"

    def test_invalid_currency(self, client):
        resp = client.post("/export/spreadsheet", json={"report_ids": [], "target_currency": "EU"})
        assert resp.status_code == 422

    def test_archive_with_partial_failures(self, app, client):
        fetcher = FakeReceiptFetcher({"ok-1": FetchedReceipt(b"png", "image/png")})
        app.dependency_overrides[get_receipt_fetcher] = lambda: fetcher
        report_id = _create_report(client)
        _add_line(client, report_id, date="2025-01-02", type="PARKING", receiptId="ok-1")
        _add_line(client, report_id, date="2025-01-03", type="LUNCH", receiptId="broken")
        _add_line(client, report_id, date="2025-01-04")

        resp = client.post("/export/archive", json={"report_ids": [report_id], "target_currency": "EUR"})
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/zip"
        today = date.today().isoformat()
        assert f"Expenses_EUR_{today}.zip" in resp.headers["content-disposition"]
        names = zipfile.ZipFile(BytesIO(resp.content)).namelist()
        assert names == [f"Expenses_EUR_{today}.xlsx", "receipts/Receipt_01_PARKING_2025-01-02.png"]

    def test_archive_reads_local_receipts(self, client, settings):
        (settings.receipts_dir / "scan-1.pdf").write_bytes(b"%PDF")
        report_id = _create_report(client)
        _add_line(client, report_id, date="2025-01-05", type="HOTEL", receiptId="scan-1.pdf")
        resp = client.post(
            "/export", json={"report_ids": [report_id], "target_currency": "EUR", "include_receipts": True}
        )
        zf = zipfile.ZipFile(BytesIO(resp.content))
        assert zf.read("receipts/Receipt_01_HOTEL_2025-01-05.pdf") == b"%PDF"

    def test_export_without_receipts_flag(self, client):
        resp = client.post("/export", json={"report_ids": [], "target_currency": "GBP"})
        assert resp.headers["content-type"] == XLSX


class TestSuggestions:

    def test_names_from_meal_metadata(self, client):
        report_id = _create_report(client)
        _add_line(client, report_id, type="LUNCH", metadata={"customer": "ACME", "colleagues": ["Ann", "bob"]})
        _add_line(client, report_id, type="DINNER", metadata={"customer name": "acme", "colleague names": ["Cleo"]})
        _add_line(client, report_id, type="PARKING", metadata={"customer": "Parking Co"})

        customers = client.get("/suggestions/customers").json()["suggestions"]
        assert customers == ["ACME"]
        colleagues = client.get("/suggestions/colleagues").json()["suggestions"]
        assert colleagues == ["Ann", "bob", "Cleo"]
        filtered = client.get("/suggestions/colleagues", params={"q": "O"}).json()["suggestions"]
        assert filtered == ["bob", "Cleo"]


class TestReceiptsApi:

    def test_upload_then_export(self, client):
        resp = client.put(
            "/receipts/2025/01/hotel.pdf",
            content=b"%PDF-1.7",
            headers={"Content-Type": "application/pdf"},
        )
        assert resp.status_code == 201
        assert resp.json() == {"receiptId": "2025/01/hotel.pdf", "size": 8}

        download = client.get("/receipts/2025/01/hotel.pdf")
        assert download.content == b"%PDF-1.7"
        assert download.headers["content-type"] == "application/pdf"

        report_id = _create_report(client)
        _add_line(client, report_id, date="2025-01-05", type="HOTEL", receiptId="2025/01/hotel.pdf")
        archive = client.post("/export/archive", json={"report_ids": [report_id], "target_currency": "EUR"})
        zf = zipfile.ZipFile(BytesIO(archive.content))
        assert zf.read("receipts/Receipt_01_HOTEL_2025-01-05.pdf") == b"%PDF-1.7"

    def test_empty_upload(self, client):
        resp = client.put("/receipts/empty.png", content=b"")
        assert resp.status_code == 400
        assert resp.json()["error"] == "bad_request"

    def test_oversized_upload(self, client, settings):
        settings.receipt_max_bytes = 4
        resp = client.put("/receipts/big.png", content=b"12345")
        assert resp.status_code == 413
        assert resp.json()["error"] == "payload_too_large"

    def test_missing_receipt(self, client):
        assert client.get("/receipts/none.png").status_code == 404
