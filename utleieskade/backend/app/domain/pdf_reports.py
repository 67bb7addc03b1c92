# backend/app/domain/pdf_reports.py
"""
PDF rendering with ReportLab platypus. Every function returns raw PDF bytes.
"""
from __future__ import annotations

import io
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .clock import utcnow

BRAND = "Utleieskade"
_HEADER_BG = colors.HexColor("#1e3a5f")


def _styles() -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("UTitle", parent=base["Heading1"], fontSize=18, alignment=TA_CENTER,
                                textColor=_HEADER_BG),
        "sub": ParagraphStyle("USub", parent=base["Normal"], fontSize=9, alignment=TA_CENTER,
                              textColor=colors.gray),
        "h": ParagraphStyle("UHead", parent=base["Heading3"], fontSize=11, textColor=_HEADER_BG, spaceAfter=4),
        "normal": base["Normal"],
        "small": ParagraphStyle("USmall", parent=base["Normal"], fontSize=8),
        "total": ParagraphStyle("UTotal", parent=base["Normal"], fontName="Helvetica-Bold", fontSize=12,
                                alignment=TA_RIGHT),
    }


def fmt_money(v: Any, currency: str = "NOK") -> str:
    if v is None or v == "":
        return "N/A"
    return f"{currency} {Decimal(str(v)):,.2f}"


def fmt_date(v: Optional[datetime]) -> str:
    return v.strftime("%Y-%m-%d %H:%M") if v else "N/A"


def _grid(rows: list[list[Any]], col_widths: Optional[list[float]] = None) -> Table:
    t = Table(rows, colWidths=col_widths, repeatRows=1)
    t.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), _HEADER_BG),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.lightgrey),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f5f7fa")]),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return t


def _kv(rows: list[tuple[str, str]], styles: dict[str, ParagraphStyle]) -> Table:
    data = [[Paragraph(f"<b>{k}</b>", styles["normal"]), Paragraph(escape(str(v)), styles["normal"])] for k, v in rows]
    t = Table(data, colWidths=[55 * mm, 115 * mm])
    t.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
        ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.lightgrey),
    ]))
    return t


def _build(elements: list, *, wide: bool = False) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=landscape(A4) if wide else A4,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        title=BRAND,
    )
    doc.build(elements)
    return buf.getvalue()


def _header(title: str, subtitle: Optional[str], styles: dict[str, ParagraphStyle]) -> list:
    out = [Paragraph(title, styles["title"])]
    out.append(Paragraph(subtitle or f"{BRAND} - generated {fmt_date(utcnow())} UTC", styles["sub"]))
    out.append(Spacer(1, 6 * mm))
    return out


def render_table_pdf(
    title: str,
    headers: Sequence[str],
    rows: Iterable[Sequence[Any]],
    *,
    subtitle: Optional[str] = None,
) -> bytes:
    """Generic listing export (tenants, inspectors, payouts, dashboard)."""
    styles = _styles()
    body = [[Paragraph(escape(str(c if c not in (None, "") else "N/A")), styles["small"]) for c in r] for r in rows]
    data = [list(headers)] + body
    if len(data) == 1:
        data.append(["No records"] + [""] * (len(headers) - 1))
    elements = _header(title, subtitle, styles)
    elements.append(_grid(data))
    return _build(elements, wide=len(headers) > 6)


def render_key_values_pdf(title: str, pairs: list[tuple[str, str]], *, subtitle: Optional[str] = None) -> bytes:
    styles = _styles()
    elements = _header(title, subtitle, styles)
    elements.append(_kv(pairs, styles))
    return _build(elements)


def render_assessment_report(case, report) -> bytes:
    styles = _styles()
    elements = _header("Damage Assessment Report", f"Case {case.id} - Report {report.id}", styles)

    prop = case.property
    tenant = case.tenant
    inspector = case.inspector
    elements.append(Paragraph("Case", styles["h"]))
    elements.append(_kv([
        ("Tenant", tenant.full_name if tenant else "N/A"),
        ("Inspector", inspector.full_name if inspector else "N/A"),
        ("Property", ", ".join(x for x in [prop.address, prop.city, prop.postcode] if x) if prop else "N/A"),
        ("Urgency", case.urgency),
        ("Description", case.description or "N/A"),
        ("Assessment", report.description or "N/A"),
    ], styles))
    elements.append(Spacer(1, 5 * mm))

    elements.append(Paragraph("Assessment items", styles["h"]))
    rows: list[list[Any]] = [["Item", "Qty", "Unit price", "Hours", "Rate", "Material", "Work", "Sum"]]
    for i in report.items:
        rows.append([
            Paragraph(escape(i.item), styles["small"]),
            f"{i.quantity}",
            fmt_money(i.unit_price, ""),
            f"{i.hours}",
            fmt_money(i.hourly_rate, ""),
            fmt_money(i.sum_material, ""),
            fmt_money(i.sum_work, ""),
            fmt_money(i.sum_post, ""),
        ])
    elements.append(_grid(rows, [48 * mm, 12 * mm, 20 * mm, 12 * mm, 18 * mm, 20 * mm, 20 * mm, 20 * mm]))
    elements.append(Spacer(1, 5 * mm))

    s = report.summary
    if s is not None:
        elements.append(Paragraph("Summary", styles["h"]))
        elements.append(_kv([
            ("Total hours", str(s.total_hours)),
            ("Materials", fmt_money(s.total_sum_materials)),
            ("Labour", fmt_money(s.total_sum_labor)),
            ("Sum excl. VAT", fmt_money(s.sum_excl_vat)),
            ("VAT", fmt_money(s.vat)),
            ("Sum incl. VAT", fmt_money(s.sum_incl_vat)),
        ], styles))
        elements.append(Spacer(1, 3 * mm))
        elements.append(Paragraph(f"Total: {fmt_money(s.total)}", styles["total"]))

    return _build(elements)


def render_payment_receipt(payment, tenant) -> bytes:
    return render_key_values_pdf(
        "Payment Receipt",
        [
            ("Receipt no.", payment.id),
            ("Case", payment.case_id or "N/A"),
            ("Paid by", f"{tenant.full_name} ({tenant.email})" if tenant else "N/A"),
            ("Amount", fmt_money(payment.amount, (payment.currency or "nok").upper())),
            ("Status", payment.status),
            ("Date", fmt_date(payment.paid_at)),
            ("Description", payment.description or "N/A"),
        ],
    )


def render_payout_statement(payout, inspector, bank) -> bytes:
    return render_key_values_pdf(
        "Payout Statement",
        [
            ("Reference", payout.id),
            ("Inspector", f"{inspector.full_name} ({inspector.email})" if inspector else "N/A"),
            ("Case", payout.case_id or "N/A"),
            ("Amount", fmt_money(payout.amount)),
            ("Status", payout.status),
            ("Earned", fmt_date(payout.payment_date)),
            ("Requested", fmt_date(payout.requested_at)),
            ("Processed", fmt_date(payout.processed_at)),
            ("Bank", (bank.bank_name or "N/A") if bank else "N/A"),
            ("Account", (bank.account_number or "N/A") if bank else "N/A"),
            ("Rejection reason", payout.rejection_reason or "N/A"),
        ],
    )


def render_earnings_report(inspector, payouts: list, *, month: int, year: int, total: Decimal) -> bytes:
    rows = [[p.id, p.case_id or "N/A", fmt_date(p.payment_date), p.status, fmt_money(p.amount)] for p in payouts]
    return render_table_pdf(
        f"Earnings Report {year}-{month:02d}",
        ["Reference", "Case", "Date", "Status", "Amount"],
        rows + [["", "", "", "Total", fmt_money(total)]],
        subtitle=f"{inspector.full_name} ({inspector.email})",
    )
