import json
from datetime import datetime, timezone

import pytest

from services import export_service
from services.export_service import ExportService, html_to_text, inline_markup


RECORD = {
    "id": "a1b2",
    "user_id": "user-1",
    "type": "reviews",
    "input_data": {"google_maps_url": "https://www.google.com/maps/place/x", "period": "6months"},
    "results": [
        {"output": ["# Synthèse", "## Points forts\n- **Accueil** chaleureux\n- Prix `corrects`", "---"]},
        {"rating": 4.6, "reviewCount": 212, "score": 81},
    ],
    "score": 81,
    "execution_time_ms": 95000,
    "created_at": datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc),
}


@pytest.fixture()
def reports_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(export_service, "ensure_reports_dir", lambda: tmp_path)
    return tmp_path


def test_inline_markup():
    assert inline_markup("**bold** and *it* with `code` & <tag>") == (
        "<b>bold</b> and <i>it</i> with <font face='Courier'>code</font> &amp; &lt;tag&gt;"
    )


def test_html_to_text():
    document = "<style>p {color: red}</style><h1>Audit</h1><p>Pages are <b>fast</b> &amp; light</p><script>x()</script>"

    assert html_to_text(document) == ["Audit", "Pages are fast & light"]


def test_json_export():
    assert ExportService.json_filename(RECORD) == "shorebreak-reviews-2026-03-14.json"
    assert json.loads(ExportService.export_json(RECORD)) == RECORD["results"]


def test_json_export_from_string_dates():
    record = {"type": "seo", "created_at": "2026-01-02T08:00:00Z", "results": None}

    assert ExportService.json_filename(record) == "shorebreak-seo-2026-01-02.json"
    assert ExportService.export_json(record) == "{}"


def test_generate_pdf(reports_dir):
    pdf_path = ExportService().generate_pdf(RECORD)

    assert pdf_path == reports_dir / "report_a1b2.pdf"
    assert pdf_path.read_bytes().startswith(b"%PDF")


def test_generate_pdf_for_html_report(reports_dir):
    record = {
        "id": "seo-1",
        "type": "seo",
        "input_data": {"website_url": "https://example.com"},
        "results": {"output": "<!DOCTYPE html><html><body><h2>Audit</h2><p>Missing meta description</p></body></html>"},
        "score": None,
        "created_at": "2026-02-01T10:00:00+00:00",
    }

    pdf_path = ExportService().generate_pdf(record)

    assert pdf_path.exists()


def test_generate_pdf_without_content(reports_dir):
    record = {"id": "empty", "type": "seo", "input_data": {}, "results": None, "created_at": None}

    assert ExportService().generate_pdf(record).exists()
