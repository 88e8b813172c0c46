# utils/document_export.py
"""
PDF and XLSX output for documents and the État 104 report.

HTML comes from the Jinja2 templates under resources/templates and is turned
into PDF by WeasyPrint. WeasyPrint is imported when a PDF is written, so the
HTML renderers work on machines without its native libraries.
"""
from __future__ import annotations

from pathlib import Path
import re
import sqlite3
from typing import Any, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from ..config import TEMPLATES_PATH
from ..constants import APP_NAME, CURRENCY
from ..database.repositories.company_repo import CompanyInfo, CompanyRepo
from ..database.repositories.delivery_notes_repo import DeliveryNotesRepo
from ..database.repositories.final_invoices_repo import FinalInvoicesRepo
from ..database.repositories.proforma_repo import ProformaRepo
from ..modules.invoice_utilities.calculations import round_money
from ..modules.invoice_utilities.status import label as status_label
from ..modules.reporting.etat104 import TVA_DEDUCTIBLE_SHARE, TVA_DUE_SHARE, Etat104Report
from .helpers import fmt_money, fmt_percent
from .loggers import get_logger

logger = get_logger(__name__)

_PDF_CSS = """
@page { size: A4; margin: 15mm 12mm 18mm 12mm; }
body { font-family: 'DejaVu Sans', Arial, sans-serif; font-size: 10pt; }
"""

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="1F4E78", end_color="1F4E78", fill_type="solid")
_THIN = Side(style="thin", color="BFBFBF")
BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)
MONEY_FORMAT = "#,##0.00"


def _sanitize_filename(name: str, max_length: int = 80) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", name or "document").strip("._")
    return (cleaned or "document")[:max_length]


def default_file_name(kind: str, ref: str, suffix: str) -> str:
    return f"{_sanitize_filename(kind)}_{_sanitize_filename(ref)}.{suffix}"


def _load_template(name: str):
    from jinja2 import Template

    path = Path(TEMPLATES_PATH) / name
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.error("Template file not found at %s: %s", path, e)
        raise FileNotFoundError(f"Template file not found at: {path}") from e
    return Template(content, autoescape=True)


def _base_context(company: Optional[CompanyInfo]) -> dict[str, Any]:
    return {
        "app_name": APP_NAME,
        "currency": CURRENCY,
        "company": company or CompanyInfo(business_name=APP_NAME),
        "money": fmt_money,
        "percent": fmt_percent,
        "status_label": status_label,
    }


def write_pdf(html: str, file_path: str | Path) -> Path:
    """Render `html` to `file_path` with WeasyPrint and return the path."""
    from weasyprint import CSS, HTML

    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    HTML(string=html, base_url=str(TEMPLATES_PATH)).write_pdf(str(path), stylesheets=[CSS(string=_PDF_CSS)])
    logger.info("Wrote PDF %s", path)
    return path


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def _document_html(title: str, doc, items, company: CompanyInfo, *, priced: bool = True, extra=None) -> str:
    tpl = _load_template("document.html")
    ctx = _base_context(company)
    ctx.update(title=title, doc=doc, items=items, priced=priced, extra=extra or {})
    return tpl.render(**ctx)


def proforma_html(conn: sqlite3.Connection, proforma_id: int) -> str:
    repo = ProformaRepo(conn)
    p = repo.require(proforma_id, "export")
    return _document_html("Proforma Invoice", p, repo.list_items(proforma_id), CompanyRepo(conn).get())


def final_invoice_html(conn: sqlite3.Connection, final_invoice_id: int) -> str:
    repo = FinalInvoicesRepo(conn)
    f = repo.require(final_invoice_id, "export")
    return _document_html(
        "Invoice", f, repo.list_items(final_invoice_id), CompanyRepo(conn).get(),
        extra={"proforma_number": f.proforma_number},
    )


def delivery_note_html(conn: sqlite3.Connection, delivery_note_id: int) -> str:
    repo = DeliveryNotesRepo(conn)
    d = repo.require(delivery_note_id, "export")
    return _document_html(
        "Delivery Note", d, repo.list_items(delivery_note_id), CompanyRepo(conn).get(), priced=False,
        extra={"final_invoice_number": d.final_invoice_number},
    )


def export_proforma_pdf(conn: sqlite3.Connection, proforma_id: int, file_path: str | Path) -> Path:
    return write_pdf(proforma_html(conn, proforma_id), file_path)


def export_final_invoice_pdf(conn: sqlite3.Connection, final_invoice_id: int, file_path: str | Path) -> Path:
    return write_pdf(final_invoice_html(conn, final_invoice_id), file_path)


def export_delivery_note_pdf(conn: sqlite3.Connection, delivery_note_id: int, file_path: str | Path) -> Path:
    return write_pdf(delivery_note_html(conn, delivery_note_id), file_path)


# ---------------------------------------------------------------------------
# État 104
# ---------------------------------------------------------------------------

def etat104_html(report: Etat104Report, company: Optional[CompanyInfo] = None) -> str:
    tpl = _load_template("etat104.html")
    ctx = _base_context(company)
    ctx.update(
        report=report,
        deductible_share=TVA_DEDUCTIBLE_SHARE,
        due_share=TVA_DUE_SHARE,
    )
    return tpl.render(**ctx)


def export_etat104_pdf(
    report: Etat104Report, file_path: str | Path, company: Optional[CompanyInfo] = None
) -> Path:
    return write_pdf(etat104_html(report, company), file_path)


def export_etat104_xlsx(
    report: Etat104Report, file_path: str | Path, company: Optional[CompanyInfo] = None
) -> Path:
    """One sheet with a row per client, a totals row and the declaration summary."""
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws = wb.active
    ws.title = "État 104"
    ws.merge_cells("A1:G1")
    ws["A1"] = f"État 104 - {report.period_label}"
    ws["A1"].font = Font(bold=True, size=14)
    if company is not None:
        ws["A2"] = f"{company.business_name}  NIF: {company.tax_id}"

    headers = ["Client ID", "Client", "NIF", "Invoices", f"Amount excl. ({CURRENCY})", f"TVA ({CURRENCY})", f"Total ({CURRENCY})"]
    for col, h in enumerate(headers, 1):
        cell = ws.cell(row=4, column=col, value=h)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center")
        cell.border = BORDER

    row = 5
    for r in report.rows + [report.totals]:
        values = [
            r.client_id, r.client_name, r.tax_id, r.invoice_count,
            round_money(r.subtotal), round_money(r.tax_total), round_money(r.total),
        ]
        for col, val in enumerate(values, 1):
            cell = ws.cell(row=row, column=col, value=val)
            cell.border = BORDER
            if col >= 5:
                cell.number_format = MONEY_FORMAT
                cell.alignment = Alignment(horizontal="right")
            if r is report.totals:
                cell.font = Font(bold=True)
        row += 1

    row += 1
    summary = [
        ("Total sales (excl. tax)", report.totals.subtotal),
        ("Total TVA collected", report.totals.tax_total),
        ("TVA deductible", report.totals.tva_deductible),
        ("TVA due", report.totals.tva_due),
    ]
    for caption, value in summary:
        ws.cell(row=row, column=2, value=caption).font = Font(bold=True)
        cell = ws.cell(row=row, column=7, value=round_money(value))
        cell.number_format = MONEY_FORMAT
        row += 1

    for col in range(1, len(headers) + 1):
        max_len = max(
            (len(str(ws.cell(row=r, column=col).value or "")) for r in range(4, ws.max_row + 1)),
            default=10,
        )
        ws.column_dimensions[get_column_letter(col)].width = min(max(max_len + 2, 12), 40)

    wb.save(str(path))
    logger.info("Wrote État 104 workbook %s", path)
    return path
