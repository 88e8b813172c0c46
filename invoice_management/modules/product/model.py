from PySide6.QtCore import QSortFilterProxyModel

from ...utils.helpers import fmt_percent
from ...widgets.rows_model import RowsTableModel


class ProductsTableModel(RowsTableModel):
    HEADERS = ["ID", "Code", "Name", "Unit price", "VAT", "Stock", "Description"]

    def values(self, p):
        return [
            p.product_id,
            p.code,
            p.name,
            p.unit_price,
            fmt_percent(p.tax_rate),
            p.stock_quantity,
            p.description or "",
        ]

    # helper for proxy filtering
    def row_as_text(self, row: int) -> str:
        p = self.at(row)
        return f"{p.product_id} {p.code} {p.name} {p.description or ''}"


class ProductFilterProxy(QSortFilterProxyModel):
    def filterAcceptsRow(self, source_row, source_parent):
        if not self.filterRegularExpression().pattern():
            return True
        model = self.sourceModel()
        try:
            text = model.row_as_text(source_row)
        except AttributeError:
            return True
        return self.filterRegularExpression().match(text).hasMatch()
