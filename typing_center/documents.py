"""
typing_center/documents.py

Printable invoice and quotation PDFs (reportlab platypus).

Layout:
- Company header
- Document card: client / service info on the left, number / date / status on the right
- Person name, numbered item table with amounts
- Subtotal / VAT / total block, amount in words
- Invoices only: payment summary per method and balance due
"""

from __future__ import annotations

import io
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

BRAND = colors.HexColor("#1e3a5f")
MUTED = colors.HexColor("#64748b")
BORDER = colors.HexColor("#e2e8f0")
STATUS_COLORS = {
    "paid": colors.HexColor("#16a34a"),
    "partial": colors.HexColor("#d97706"),
    "unpaid": colors.HexColor("#dc2626"),
}

METHOD_LABELS = {
    "cash": "Cash Received",
    "bank_transfer": "Bank Transfer",
    "card": "Card",
    "cheque": "Cheque",
}


# ---------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------
def _fmt_money(value) -> str:
    return f"{Decimal(str(value or 0)):,.2f}"


def _fmt_date(value: Optional[date]) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"


_ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine", "Ten",
    "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen", "Seventeen",
    "Eighteen", "Nineteen",
]
_TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety"]


def _below_thousand(n: int) -> str:
    words = []
    if n >= 100:
        words.append(f"{_ONES[n // 100]} Hundred")
        n %= 100
    if n >= 20:
        words.append(_TENS[n // 10] + (f" {_ONES[n % 10]}" if n % 10 else ""))
    elif n:
        words.append(_ONES[n])
    return " ".join(words)


def amount_in_words(value) -> str:
    """'AED One Thousand Fifty and 25/100 Only' style wording."""
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"))
    whole = int(amount)
    fils = int((amount - whole) * 100)

    if whole == 0:
        words = "Zero"
    else:
        parts = []
        for scale, name in ((10 ** 9, "Billion"), (10 ** 6, "Million"), (1000, "Thousand"), (1, "")):
            chunk = whole // scale
            if chunk:
                parts.append(f"{_below_thousand(chunk)} {name}".strip())
                whole %= scale
        words = " ".join(parts)

    if fils:
        return f"AED {words} and {fils:02d}/100 Only"
    return f"AED {words} Only"


def _styles() -> Dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        "company": ParagraphStyle("Company", parent=base["Heading1"], fontSize=18, textColor=BRAND, spaceAfter=4),
        "title": ParagraphStyle("DocTitle", parent=base["Heading2"], fontSize=14, textColor=BRAND, spaceAfter=8),
        "label": ParagraphStyle("Label", parent=base["Normal"], fontSize=9, textColor=MUTED),
        "normal": ParagraphStyle("Cell", parent=base["Normal"], fontSize=9),
        "bold": ParagraphStyle("CellBold", parent=base["Normal"], fontSize=9, fontName="Helvetica-Bold"),
        "small": ParagraphStyle("Small", parent=base["Normal"], fontSize=8, textColor=MUTED),
    }


# ---------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------
def _info_card(left: List[tuple], right: List[tuple], styles) -> Table:
    rows = []
    for i in range(max(len(left), len(right))):
        row = []
        for side in (left, right):
            if i < len(side):
                label, value = side[i]
                row += [Paragraph(label, styles["label"]), Paragraph(f": {value}", styles["bold"])]
            else:
                row += ["", ""]
        rows.append(row)

    table = Table(rows, colWidths=[28 * mm, 62 * mm, 26 * mm, 54 * mm])
    table.setStyle(
        TableStyle(
            [
                ("BOX", (0, 0), (-1, -1), 0.75, BORDER),
                ("BACKGROUND", (0, 0), (-1, -1), colors.HexColor("#f8fafc")),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("TOPPADDING", (0, 0), (-1, -1), 4),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ]
        )
    )
    return table


def _items_table(items: List[dict], styles) -> Table:
    data = [["#", "Description", "Amount (AED)"]]
    for index, item in enumerate(items or [], start=1):
        data.append(
            [
                f"{index}.",
                Paragraph(escape(str(item.get("description") or "-")), styles["normal"]),
                _fmt_money(item.get("amount")),
            ]
        )

    table = Table(data, colWidths=[12 * mm, 118 * mm, 40 * mm], repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), BRAND),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (2, 0), (2, -1), "RIGHT"),
                ("GRID", (0, 0), (-1, -1), 0.5, BORDER),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f1f5f9")]),
                ("TOPPADDING", (0, 0), (-1, -1), 5),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
            ]
        )
    )
    return table


def _totals_table(document, vat_label: str) -> Table:
    rows = [["Subtotal (AED)", _fmt_money(document.subtotal)]]
    if document.include_vat:
        rows.append([vat_label, _fmt_money(document.vat_amount)])
    rows.append(["Total Amount (AED)", _fmt_money(document.total)])

    table = Table(rows, colWidths=[50 * mm, 40 * mm], hAlign="RIGHT")
    table.setStyle(
        TableStyle(
            [
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("LINEABOVE", (0, -1), (-1, -1), 1, BRAND),
            ]
        )
    )
    return table


def _payment_summary(invoice, styles) -> List:
    by_method: Dict[str, Decimal] = {}
    for payment in invoice.payments:
        by_method[payment.method] = by_method.get(payment.method, Decimal("0")) + Decimal(str(payment.amount))

    rows = [[METHOD_LABELS.get(m, m), _fmt_money(v)] for m, v in by_method.items() if v > 0]
    rows.append(["Balance Due (AED)", _fmt_money(invoice.balance)])

    table = Table(rows, colWidths=[50 * mm, 40 * mm], hAlign="RIGHT")
    table.setStyle(
        TableStyle(
            [
                ("FONTSIZE", (0, 0), (-1, -1), 9),
                ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
            ]
        )
    )
    return [Paragraph("Payment Summary", styles["title"]), table]


def _build(elements: List) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=20 * mm,
        leftMargin=20 * mm,
        topMargin=18 * mm,
        bottomMargin=18 * mm,
    )
    doc.build(elements)
    return buffer.getvalue()


def _vat_label(vat_rate) -> str:
    pct = (Decimal(str(vat_rate)) * 100).normalize()
    return f"VAT ({pct:f}%)"


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------
def render_invoice_pdf(invoice, company_name: str, vat_rate="0.05") -> bytes:
    styles = _styles()
    elements: List = [
        Paragraph(escape(company_name), styles["company"]),
        Paragraph("TAX INVOICE" if invoice.include_vat else "INVOICE", styles["title"]),
    ]

    left = [("Client Name", escape(invoice.client_name or "Client"))]
    if invoice.service_type:
        left.append(("Service Type", escape(invoice.service_type.replace("_", " ").upper())))
    if invoice.license_type:
        left.append(("License Type", escape(invoice.license_type)))
    if invoice.activity:
        left.append(("Activity", escape(invoice.activity)))

    status = invoice.payment_status or "unpaid"
    right = [
        ("Invoice No", invoice.invoice_number),
        ("Date", _fmt_date(invoice.date)),
        ("Status", f'<font color="{STATUS_COLORS.get(status, MUTED).hexval().replace("0x", "#")}">{status.upper()}</font>'),
    ]
    elements += [_info_card(left, right, styles), Spacer(1, 8)]

    if invoice.person_name:
        elements += [Paragraph(f"Person: {escape(invoice.person_name)}", styles["bold"]), Spacer(1, 4)]

    elements += [
        _items_table(invoice.items, styles),
        Spacer(1, 8),
        _totals_table(invoice, _vat_label(vat_rate)),
        Spacer(1, 10),
    ]
    elements += _payment_summary(invoice, styles)
    elements += [
        Spacer(1, 10),
        Paragraph(f"Amount in Words: {amount_in_words(invoice.total)}", styles["normal"]),
        Spacer(1, 16),
        Paragraph("Thanks and Best Regards,<br/>Accounts Department", styles["small"]),
    ]
    return _build(elements)


def render_quotation_pdf(quotation, company_name: str, vat_rate="0.05") -> bytes:
    styles = _styles()
    elements: List = [
        Paragraph(escape(company_name), styles["company"]),
        Paragraph("QUOTATION", styles["title"]),
    ]

    left = [("Client Name", escape(quotation.client_name or "Client"))]
    if quotation.service_category:
        left.append(("Service", escape(quotation.service_category.replace("_", " ").upper())))
    if quotation.license_type:
        left.append(("License Type", escape(quotation.license_type)))
    if quotation.activity:
        left.append(("Activity", escape(quotation.activity)))

    right = [
        ("Quotation No", quotation.quotation_number),
        ("Date", _fmt_date(quotation.date)),
        ("Status", (quotation.status or "draft").upper()),
    ]
    elements += [_info_card(left, right, styles), Spacer(1, 8)]

    if quotation.person_name:
        elements += [Paragraph(f"Person: {escape(quotation.person_name)}", styles["bold"]), Spacer(1, 4)]
    if quotation.service_description:
        elements += [Paragraph(escape(quotation.service_description), styles["normal"]), Spacer(1, 6)]

    elements += [
        _items_table(quotation.items, styles),
        Spacer(1, 8),
        _totals_table(quotation, _vat_label(vat_rate)),
        Spacer(1, 10),
        Paragraph(f"Amount in Words: {amount_in_words(quotation.total)}", styles["normal"]),
        Spacer(1, 16),
        Paragraph("This quotation is an estimate and is not a tax invoice.", styles["small"]),
    ]
    return _build(elements)
