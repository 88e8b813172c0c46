# invoice_management/modules/dashboard/controller.py
from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from PySide6.QtCore import Signal, Slot
from PySide6.QtWidgets import QWidget

from ..base_module import BaseModule
from ...database.repositories.dashboard_repo import DashboardRepo
from ...session import Session
from ..invoice_utilities.status import DELIVERY_NOTE, FINAL_INVOICE, PROFORMA
from .view import DashboardView


@dataclass
class DateRange:
    date_from: str  # ISO yyyy-mm-dd
    date_to: str    # ISO yyyy-mm-dd


class DashboardController(BaseModule):
    """
    Owns the date context, coordinates repo <-> view, and emits navigation intents.

    Signals:
      - navigate(title: str): ask the main window to open a module by its nav title
    """

    navigate = Signal(str)

    # KPI card -> nav title of the screen that lists those documents
    _KPI_TARGETS = {
        "invoiced": "Final invoices",
        "outstanding": "Final invoices",
        "overdue": "Final invoices",
        "open_proformas": "Proformas",
        "awaiting_conversion": "Proformas",
        "pending_deliveries": "Delivery notes",
    }

    def __init__(self, conn: sqlite3.Connection, session: Optional[Session] = None) -> None:
        super().__init__()
        self.conn = conn
        self.session = session
        self.repo = DashboardRepo(conn)
        self.view = DashboardView()
        self.view.period_changed.connect(self.on_period_changed)
        self.view.kpi_clicked.connect(self._on_kpi_clicked)

        self._current_range = self._calc_period("mtd")
        self.refresh()

    @Slot(str, str, str)
    def on_period_changed(self, period_key: str, date_from: str, date_to: str) -> None:
        self._current_range = self._calc_period(period_key, date_from, date_to)
        self.refresh()

    def _calc_period(self, key: str, df: Optional[str] = None, dt: Optional[str] = None) -> DateRange:
        today = date.today()
        iso_today = today.isoformat()
        key = (key or "mtd").lower()
        if key == "today":
            return DateRange(iso_today, iso_today)
        if key == "mtd":
            return DateRange(date(today.year, today.month, 1).isoformat(), iso_today)
        if key == "last30":
            return DateRange((today - timedelta(days=29)).isoformat(), iso_today)
        if df and dt:
            return DateRange(str(df), str(dt))
        return DateRange(iso_today, iso_today)

    @Slot()
    def refresh(self) -> None:
        """Pull fresh figures for the current range and push them to the view."""
        df, dt = self._current_range.date_from, self._current_range.date_to
        today = date.today().isoformat()

        proformas = self.repo.proforma_counts()
        invoices = self.repo.final_invoice_counts()
        deliveries = self.repo.delivery_note_counts()
        overdue = self.repo.overdue_invoices(today, limit=50)

        self.view.set_kpi_value("invoiced", self.repo.invoiced_total(df, dt))
        self.view.set_kpi_value("outstanding", self.repo.outstanding_total())
        self.view.set_kpi_value("overdue", len(overdue))
        self.view.set_kpi_value("open_proformas", proformas.get("draft", 0) + proformas.get("sent", 0))
        self.view.set_kpi_value("awaiting_conversion", self.repo.awaiting_conversion())
        self.view.set_kpi_value("pending_deliveries", deliveries.get("pending", 0))

        self.view.set_overdue(overdue)
        self.view.set_status_counts(
            {PROFORMA: proformas, FINAL_INVOICE: invoices, DELIVERY_NOTE: deliveries}
        )

    @Slot(str)
    def _on_kpi_clicked(self, key: str) -> None:
        target = self._KPI_TARGETS.get(key)
        if target:
            self.navigate.emit(target)

    def get_widget(self) -> QWidget:
        return self.view
