# invoice_management/modules/reporting/etat104_tab.py
from __future__ import annotations

import sqlite3
from datetime import date
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QComboBox,
    QFormLayout,
    QFrame,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from ...database.repositories.company_repo import CompanyRepo
from ...database.repositories.reporting_repo import ReportingRepo
from ...utils.document_export import default_file_name, export_etat104_pdf, export_etat104_xlsx
from ...utils.helpers import fmt_money
from ...utils.loggers import get_logger
from ...utils.ui_helpers import ask_save_path, info, run_guarded
from ...widgets.table_view import TableView
from .etat104 import TVA_DEDUCTIBLE_SHARE, TVA_DUE_SHARE, Etat104Report
from .model import Etat104TableModel

logger = get_logger(__name__)

_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class Etat104Tab(QWidget):
    """
    Monthly TVA declaration: pick year and month, generate, then export the
    same report as PDF or Excel.
    """

    def __init__(self, conn: sqlite3.Connection, parent=None) -> None:
        super().__init__(parent)
        self.conn = conn
        self.repo = ReportingRepo(conn)
        self.company = CompanyRepo(conn)
        self.report: Optional[Etat104Report] = None

        self._build_ui()
        self._wire()
        self.refresh()

    # ---------------- UI ----------------

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(6, 6, 6, 6)

        bar = QFrame()
        bar.setFrameShape(QFrame.StyledPanel)
        fl = QFormLayout(bar)
        fl.setLabelAlignment(Qt.AlignRight)

        today = date.today()
        self.spn_year = QSpinBox()
        self.spn_year.setRange(2000, 2100)
        self.spn_year.setValue(today.year)
        self.cmb_month = QComboBox()
        for i, name in enumerate(_MONTHS, 1):
            self.cmb_month.addItem(name, i)
        self.cmb_month.setCurrentIndex(today.month - 1)

        self.btn_generate = QPushButton("Generate")
        self.btn_export_pdf = QPushButton("Export PDF…")
        self.btn_export_xlsx = QPushButton("Export Excel…")

        period = QHBoxLayout()
        period.addWidget(self.cmb_month)
        period.addWidget(self.spn_year)
        period.addWidget(self.btn_generate)
        period.addStretch(1)
        period.addWidget(self.btn_export_pdf)
        period.addWidget(self.btn_export_xlsx)
        fl.addRow("Period:", period)
        root.addWidget(bar)

        self.table = TableView()
        self.model = Etat104TableModel()
        self.table.setModel(self.model)
        self.table.setSortingEnabled(False)
        root.addWidget(self.table, 1)

        self.lbl_summary = QLabel()
        self.lbl_summary.setTextFormat(Qt.RichText)
        root.addWidget(self.lbl_summary)

    def _wire(self) -> None:
        self.btn_generate.clicked.connect(self.refresh)
        self.btn_export_pdf.clicked.connect(self._export_pdf)
        self.btn_export_xlsx.clicked.connect(self._export_xlsx)

    # ---------------- data ----------------

    def period(self) -> tuple[int, int]:
        return self.spn_year.value(), self.cmb_month.currentData()

    def refresh(self) -> None:
        year, month = self.period()
        report = run_guarded(self, "État 104", self.repo.etat104, year, month, logger=logger)
        if report is None:
            return
        self.report = report
        self.model.set_report(report)
        self.table.resizeColumnsToContents()
        has_rows = not report.is_empty
        self.btn_export_pdf.setEnabled(has_rows)
        self.btn_export_xlsx.setEnabled(has_rows)
        if not has_rows:
            self.lbl_summary.setText(f"No final invoices issued in {report.period_label}.")
            return
        t = report.totals
        self.lbl_summary.setText(
            f"<b>{report.period_label}</b>: {t.invoice_count} invoice(s), "
            f"TVA collected {fmt_money(t.tax_total)} · "
            f"deductible ({TVA_DEDUCTIBLE_SHARE * 100:.0f}%) {fmt_money(t.tva_deductible)} · "
            f"due ({TVA_DUE_SHARE * 100:.0f}%) {fmt_money(t.tva_due)}"
        )

    def _export(self, suffix: str, file_filter: str, writer) -> None:
        if self.report is None or self.report.is_empty:
            info(self, "État 104", "Generate a report with at least one invoice first.")
            return
        ref = f"{self.report.year}-{self.report.month:02d}"
        path = ask_save_path(self, "Export État 104", default_file_name("etat104", ref, suffix), file_filter)
        if not path:
            return
        if run_guarded(self, "Export", writer, self.report, path, self.company.get(), logger=logger):
            info(self, "Export", f"Saved to {path}")

    def _export_pdf(self) -> None:
        self._export("pdf", "PDF Files (*.pdf)", export_etat104_pdf)

    def _export_xlsx(self) -> None:
        self._export("xlsx", "Excel Files (*.xlsx)", export_etat104_xlsx)
