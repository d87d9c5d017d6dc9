import csv
import io
from typing import Dict, List

from quart import Response

TRUE_VALUES = {"1", "true", "yes", "y", "x"}


def generate_csv_content(rows: List[Dict], columns: List[str]) -> str:
    """Write dict rows to CSV text; missing values become empty cells."""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=columns, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({col: "" if row.get(col) is None else row.get(col) for col in columns})
    return output.getvalue()


def parse_csv_content(text: str) -> List[Dict]:
    """Read CSV text into dicts keyed by lower-cased, trimmed headers."""
    reader = csv.DictReader(io.StringIO(text.lstrip("﻿")))
    rows = []
    for raw in reader:
        rows.append({
            (key or "").strip().lower(): (value.strip() if isinstance(value, str) else value)
            for key, value in raw.items()
        })
    return rows


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in TRUE_VALUES


def csv_response(content: str, filename: str) -> Response:
    response = Response(content, mimetype="text/csv")
    response.headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    response.headers["Cache-Control"] = "no-store"
    return response
