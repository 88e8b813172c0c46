from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Sequence

from PySide6.QtCore import QAbstractTableModel, QModelIndex, QSortFilterProxyModel, Qt

from ..utils.helpers import fmt_money


class RowsTableModel(QAbstractTableModel):
    """
    Read-only table over a list of row objects.

    Subclasses set HEADERS and implement values(row) returning one value per
    column. Decimal values are shown as money and right-aligned; the raw row
    is available through ROW_ROLE and at().
    """

    HEADERS: Sequence[str] = ()
    ROW_ROLE = Qt.UserRole + 1

    def __init__(self, rows: list | None = None):
        super().__init__()
        self._rows = list(rows or [])

    def values(self, row: Any) -> Sequence[Any]:
        raise NotImplementedError

    def rowCount(self, parent=QModelIndex()):
        return 0 if parent.isValid() else len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        return len(self.HEADERS)

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid():
            return None
        r = self._rows[index.row()]
        if role == self.ROW_ROLE:
            return r
        value = self.values(r)[index.column()]
        if role in (Qt.DisplayRole, Qt.EditRole):
            if isinstance(value, Decimal):
                return fmt_money(value)
            return "" if value is None else value
        if role == Qt.TextAlignmentRole and isinstance(value, (Decimal, int)):
            return int(Qt.AlignRight | Qt.AlignVCenter)
        return None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            return self.HEADERS[section]
        return super().headerData(section, orientation, role)

    # --- helpers ------------------------------------------------------------

    def at(self, row: int):
        return self._rows[row]

    def rows(self) -> list:
        return list(self._rows)

    def replace(self, rows: list):
        self.beginResetModel()
        self._rows = list(rows)
        self.endResetModel()

    def find(self, predicate: Callable[[Any], bool]) -> int:
        for i, r in enumerate(self._rows):
            if predicate(r):
                return i
        return -1


class StatusFilterProxy(QSortFilterProxyModel):
    """
    Text search across all columns plus an optional filter on the row's
    `status` attribute ("all" shows everything).
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._status_filter = "all"
        self.setFilterCaseSensitivity(Qt.CaseInsensitive)
        self.setFilterKeyColumn(-1)

    def set_status_filter(self, status: str | None):
        status = (status or "all").lower()
        if status != self._status_filter:
            self._status_filter = status
            self.invalidateFilter()

    def filterAcceptsRow(self, source_row, source_parent):
        if self._status_filter != "all":
            row = self.sourceModel().at(source_row)
            if getattr(row, "status", None) != self._status_filter:
                return False
        return super().filterAcceptsRow(source_row, source_parent)
