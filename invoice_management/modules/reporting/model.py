# invoice_management/modules/reporting/model.py
from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont

from ...widgets.rows_model import RowsTableModel


class Etat104TableModel(RowsTableModel):
    """Client rows of an État 104 report followed by the bold totals row."""

    HEADERS = ("Client", "NIF", "Invoices", "Amount excl.", "TVA", "Total", "TVA deductible", "TVA due")

    def __init__(self, report=None):
        super().__init__([])
        self.set_report(report)

    def set_report(self, report) -> None:
        rows = [] if report is None else [*report.rows, report.totals]
        self.replace(rows)

    def values(self, r):
        return [
            r.client_name,
            r.tax_id,
            r.invoice_count,
            r.subtotal,
            r.tax_total,
            r.total,
            r.tva_deductible,
            r.tva_due,
        ]

    def data(self, index, role=Qt.DisplayRole):
        if index.isValid() and role == Qt.FontRole and self.at(index.row()).client_id is None:
            f = QFont()
            f.setBold(True)
            return f
        return super().data(index, role)
