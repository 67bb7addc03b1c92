# backend/app/domain/csv_export.py
from __future__ import annotations

import csv
import io
from typing import Any, Iterable, Mapping, Sequence


def _cell(v: Any) -> Any:
    if v is None or v == "":
        return "N/A"
    if hasattr(v, "isoformat"):
        return v.isoformat()
    return v


def to_csv(columns: Sequence[tuple[str, str]], rows: Iterable[Mapping[str, Any]]) -> str:
    """columns are (key, header label) pairs; missing values render as N/A."""
    buf = io.StringIO()
    w = csv.writer(buf)
    w.writerow([label for _, label in columns])
    for r in rows:
        w.writerow([_cell(r.get(key)) for key, _ in columns])
    return buf.getvalue()
