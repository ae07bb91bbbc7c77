"""CSV serialization helpers."""

from __future__ import annotations

import csv
from pathlib import Path

CSV_FIELDS = [
    "email",
    "sources",
    "confidence",
    "pattern_score",
    "business_email",
    "validation_score",
    "date_found_utc",
    "notes",
]
CONTACT_CSV_FIELDS = [
    "name",
    "role",
    "email",
    "probability",
    "verification_source",
    "name_confidence_score",
    "completed_searches",
    "search_status",
]


def write_rows(path: str, rows: list[dict[str, str]], fields: list[str] | None = None) -> None:
    """Write rows to CSV with a stable schema (email rows by default)."""
    output_path = Path(path)
    with output_path.open("w", newline="", encoding="utf-8") as file_obj:
        writer = csv.DictWriter(file_obj, fieldnames=fields or CSV_FIELDS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
