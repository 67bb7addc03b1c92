# backend/app/responses.py
from __future__ import annotations

from typing import Any, Optional, Sequence, Union

from fastapi import HTTPException, Request, Response

from .domain.csv_export import to_csv
from .domain.pdf_reports import render_table_pdf


def envelope(message: str, data: Any = None) -> dict[str, Any]:
    """Uniform success body: {status, message, data}."""
    return {"status": "success", "message": message, "data": data}


def error_body(message: str) -> dict[str, Any]:
    return {"status": "error", "message": message}


def attachment(content: Union[bytes, str], *, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def pdf_attachment(content: bytes, filename: str) -> Response:
    return attachment(content, filename=filename, media_type="application/pdf")


def csv_attachment(content: str, filename: str) -> Response:
    return attachment(content, filename=filename, media_type="text/csv; charset=utf-8")


def export_response(
    fmt: Optional[str],
    *,
    name: str,
    title: str,
    columns: Sequence[tuple[str, str]],
    rows: list[dict[str, Any]],
) -> Response:
    """csv or pdf download of a listing; columns are (key, label) pairs."""
    kind = (fmt or "").strip().lower()
    if kind == "csv":
        return csv_attachment(to_csv(columns, rows), f"{name}.csv")
    if kind == "pdf":
        table = [[r.get(key) for key, _ in columns] for r in rows]
        return pdf_attachment(render_table_pdf(title, [label for _, label in columns], table), f"{name}.pdf")
    raise HTTPException(status_code=400, detail="Invalid format. Use ?format=csv or ?format=pdf")


def base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")
