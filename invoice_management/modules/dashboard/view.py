from __future__ import annotations

from typing import Dict, Optional, Tuple

from PySide6.QtCore import Qt, Signal, QDate
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QComboBox, QDateEdit,
    QGridLayout, QFrame, QSizePolicy, QAbstractItemView, QHeaderView,
)

from ...utils.helpers import fmt_money
from ...widgets.table_view import TableView
from .model import OverdueInvoicesModel, StatusBreakdownModel

# (key, title, caption); order is the grid order
KPI_CARDS = (
    ("invoiced", "Invoiced", "final invoices in period"),
    ("outstanding", "Outstanding", "unpaid final invoices"),
    ("overdue", "Overdue", "unpaid past due date"),
    ("open_proformas", "Open proformas", "draft or sent"),
    ("awaiting_conversion", "To invoice", "approved, not converted"),
    ("pending_deliveries", "Pending deliveries", "delivery notes not delivered"),
)

_MONEY_KPIS = {"invoiced", "outstanding"}


class DashboardView(QWidget):
    """
    Pure-UI dashboard surface. Controller drives it by calling the setters.

    Signals:
        period_changed(period_key: str, date_from: str, date_to: str)
        kpi_clicked(key: str)
    """

    period_changed = Signal(str, str, str)
    kpi_clicked = Signal(str)

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._kpi_cards: Dict[str, KPICard] = {}
        self._period_key = "mtd"
        self._build_ui()
        self._wire()

    # ---------------- UI ----------------
    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(8, 8, 8, 8)
        root.setSpacing(10)

        top = QHBoxLayout()
        title = QLabel("<h2>Dashboard</h2>")
        title.setTextFormat(Qt.RichText)
        top.addWidget(title)
        top.addStretch(1)

        self.cmb_period = QComboBox()
        self.cmb_period.addItems(["Today", "MTD", "Last 30 Days", "Custom"])
        self.cmb_period.setCurrentIndex(1)

        self.ed_from = QDateEdit()
        self.ed_from.setCalendarPopup(True)
        self.ed_from.setDisplayFormat("yyyy-MM-dd")
        self.ed_to = QDateEdit()
        self.ed_to.setCalendarPopup(True)
        self.ed_to.setDisplayFormat("yyyy-MM-dd")
        self._set_dates_for_key("mtd")

        self.btn_apply_period = QPushButton("Apply")
        self._toggle_custom_dates(False)

        top.addWidget(QLabel("Period:"))
        top.addWidget(self.cmb_period)
        top.addWidget(self.ed_from)
        top.addWidget(self.ed_to)
        top.addWidget(self.btn_apply_period)
        root.addLayout(top)

        gridwrap = QWidget()
        self.grid = QGridLayout(gridwrap)
        self.grid.setContentsMargins(0, 0, 0, 0)
        self.grid.setHorizontalSpacing(10)
        self.grid.setVerticalSpacing(10)
        for i, (key, title_text, caption) in enumerate(KPI_CARDS):
            card = KPICard(title_text, caption)
            card.clicked.connect(lambda k=key: self.kpi_clicked.emit(k))
            self._kpi_cards[key] = card
            self.grid.addWidget(card, i // 3, i % 3)
        gridwrap.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Fixed)
        root.addWidget(gridwrap)

        tables = QHBoxLayout()
        tables.setSpacing(10)
        self.tbl_overdue = TableView()
        self._prep_simple_table(self.tbl_overdue)
        self.model_overdue = OverdueInvoicesModel([])
        self.tbl_overdue.setModel(self.model_overdue)
        tables.addWidget(_Card(self.tbl_overdue, "Overdue invoices"), 3)

        self.tbl_status = TableView()
        self._prep_simple_table(self.tbl_status)
        self.model_status = StatusBreakdownModel([])
        self.tbl_status.setModel(self.model_status)
        tables.addWidget(_Card(self.tbl_status, "Documents by status"), 2)
        root.addLayout(tables, 1)

    def _wire(self) -> None:
        self.cmb_period.currentIndexChanged.connect(self._on_period_combo)
        self.btn_apply_period.clicked.connect(self._apply_period)

    # ---------------- period helpers ----------------
    def _on_period_combo(self) -> None:
        key = self._period_key_from_combo()
        self._period_key = key
        self._toggle_custom_dates(key == "custom")
        if key != "custom":
            self._set_dates_for_key(key)
            self._apply_period()

    def _apply_period(self) -> None:
        df, dt = self.current_period_dates()
        self.period_changed.emit(self._period_key, df, dt)

    def _period_key_from_combo(self) -> str:
        m = {0: "today", 1: "mtd", 2: "last30", 3: "custom"}
        return m.get(self.cmb_period.currentIndex(), "mtd")

    def _toggle_custom_dates(self, on: bool) -> None:
        self.ed_from.setVisible(on)
        self.ed_to.setVisible(on)
        self.btn_apply_period.setVisible(on)

    def _set_dates_for_key(self, key: str) -> None:
        today = QDate.currentDate()
        if key == "today":
            df = dt = today
        elif key == "mtd":
            df = QDate(today.year(), today.month(), 1)
            dt = today
        elif key == "last30":
            df = today.addDays(-29)
            dt = today
        else:
            return
        self.ed_from.setDate(df)
        self.ed_to.setDate(dt)

    def current_period_dates(self) -> Tuple[str, str]:
        return self.ed_from.date().toString("yyyy-MM-dd"), self.ed_to.date().toString("yyyy-MM-dd")

    # ---------------- Public setters for controller ----------------
    def set_kpi_value(self, key: str, value, caption: Optional[str] = None) -> None:
        card = self._kpi_cards.get(key)
        if not card:
            return
        card.set_value(fmt_money(value) if key in _MONEY_KPIS else str(int(value)))
        if caption is not None:
            card.set_caption(caption)

    def kpi_text(self, key: str) -> str:
        return self._kpi_cards[key].lbl_value.text()

    def set_overdue(self, rows: list[dict]) -> None:
        self.model_overdue.replace(rows)
        self.tbl_overdue.resizeColumnsToContents()

    def set_status_counts(self, counts_by_kind: dict[str, dict[str, int]]) -> None:
        self.model_status.replace(StatusBreakdownModel.rows_for(counts_by_kind))
        self.tbl_status.resizeColumnsToContents()

    def _prep_simple_table(self, tv: TableView) -> None:
        tv.setSelectionMode(QAbstractItemView.NoSelection)
        tv.setSortingEnabled(False)
        tv.verticalHeader().setVisible(False)
        tv.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeToContents)
        tv.setEditTriggers(QAbstractItemView.NoEditTriggers)


# ======================= Visual building blocks =======================

class KPICard(QFrame):
    clicked = Signal()

    def __init__(self, title: str, caption: str) -> None:
        super().__init__()
        self.setObjectName("kpi_card")
        self.setStyleSheet("""
            QFrame#kpi_card {
                border: 1px solid #e1e1e1;
                border-radius: 10px;
                background: #fff;
            }
        """)
        self.setCursor(Qt.PointingHandCursor)

        v = QVBoxLayout(self)
        v.setContentsMargins(12, 10, 12, 12)
        v.setSpacing(2)

        self.lbl_title = QLabel(title)
        f = self.lbl_title.font()
        f.setBold(True)
        self.lbl_title.setFont(f)

        self.lbl_value = QLabel("-")
        fv = QFont(self.lbl_value.font())
        fv.setPointSize(fv.pointSize() + 6)
        fv.setBold(True)
        self.lbl_value.setFont(fv)

        self.lbl_caption = QLabel(caption)
        self.lbl_caption.setStyleSheet("color:#777;")

        v.addWidget(self.lbl_title)
        v.addWidget(self.lbl_value)
        v.addWidget(self.lbl_caption)

    def mousePressEvent(self, e) -> None:  # type: ignore[override]
        if e.button() == Qt.LeftButton:
            self.clicked.emit()
        super().mousePressEvent(e)

    def set_value(self, s: str) -> None:
        self.lbl_value.setText(s)

    def set_caption(self, s: str) -> None:
        self.lbl_caption.setText(s)


class _Card(QWidget):
    """Wrap any widget in a titled card frame."""
    def __init__(self, inner: QWidget, title: str) -> None:
        super().__init__()
        v = QVBoxLayout(self)
        v.setContentsMargins(0, 0, 0, 0)
        frame = QFrame()
        frame.setFrameShape(QFrame.StyledPanel)
        frame.setStyleSheet("QFrame { border:1px solid #dcdcdc; border-radius:8px; }")
        fl = QVBoxLayout(frame)
        fl.setContentsMargins(12, 10, 12, 12)
        fl.setSpacing(6)
        fl.addWidget(QLabel(f"<b>{title}</b>"))
        fl.addWidget(inner)
        v.addWidget(frame)
