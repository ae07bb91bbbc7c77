import csv
from pathlib import Path

from lead_discovery.io_csv import CONTACT_CSV_FIELDS, CSV_FIELDS, write_rows


def test_write_rows_creates_csv_with_schema(tmp_path: Path) -> None:
    output = tmp_path / "out.csv"
    write_rows(
        str(output),
        [
            {
                "email": "alice.walker@acme.com",
                "sources": "website_crawler;pattern_prediction",
                "confidence": "90",
                "pattern_score": "90",
                "business_email": "yes",
                "validation_score": "72",
                "date_found_utc": "2026-01-01T00:00:00Z",
                "notes": "domain accepts mail",
            }
        ],
    )
    text = output.read_text(encoding="utf-8")
    assert text.splitlines()[0] == ",".join(CSV_FIELDS)
    assert "alice.walker@acme.com" in text


def test_write_rows_with_contact_schema(tmp_path: Path) -> None:
    output = tmp_path / "contacts.csv"
    write_rows(
        str(output),
        [{"name": "Alice Walker", "email": "alice@acme.com", "search_status": "found"}],
        CONTACT_CSV_FIELDS,
    )
    with output.open(encoding="utf-8", newline="") as file_obj:
        rows = list(csv.DictReader(file_obj))
    assert rows[0]["name"] == "Alice Walker"
    assert rows[0]["role"] == ""
    assert rows[0]["search_status"] == "found"
