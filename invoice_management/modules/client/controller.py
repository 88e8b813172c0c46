from __future__ import annotations

import html
import sqlite3
from typing import Optional

from PySide6.QtCore import Qt, QSortFilterProxyModel, QRegularExpression
from PySide6.QtWidgets import QWidget

from ..base_module import BaseModule
from .view import ClientView
from .form import ClientForm
from .model import ClientsTableModel
from ...database.repositories.clients_repo import ClientsRepo
from ...session import DOCUMENT_EDITORS, Session
from ...utils.loggers import get_logger
from ...utils.ui_helpers import confirm, info, run_guarded

logger = get_logger(__name__)


class ClientController(BaseModule):
    def __init__(self, conn: sqlite3.Connection, session: Optional[Session] = None):
        super().__init__()
        self.conn = conn
        self.session = session
        self.repo = ClientsRepo(conn)
        self.view = ClientView()
        self.view.set_editable(session is not None and session.has_role(DOCUMENT_EDITORS))
        self._wire()
        self._reload()

    def get_widget(self) -> QWidget:
        return self.view

    # ------------------------------------------------------------------ #
    # Wiring & model
    # ------------------------------------------------------------------ #

    def _wire(self):
        self.view.btn_add.clicked.connect(self._add)
        self.view.btn_edit.clicked.connect(self._edit)
        self.view.btn_del.clicked.connect(self._delete)
        self.view.search.textChanged.connect(self._apply_filter)

    def _build_model(self):
        self.base = ClientsTableModel(self.repo.list_clients())
        self.proxy = QSortFilterProxyModel(self.view)
        self.proxy.setSourceModel(self.base)
        self.proxy.setFilterCaseSensitivity(Qt.CaseInsensitive)
        self.proxy.setFilterKeyColumn(-1)
        self.view.table.setModel(self.proxy)
        self.view.table.resizeColumnsToContents()
        # selection model is new after setModel
        self.view.table.selectionModel().selectionChanged.connect(self._update_details)

    def _reload(self):
        self._build_model()
        if self.proxy.rowCount() > 0:
            self.view.table.selectRow(0)
        self._update_details()

    def _apply_filter(self, text: str):
        self.proxy.setFilterRegularExpression(
            QRegularExpression(QRegularExpression.escape(text), QRegularExpression.CaseInsensitiveOption)
        )

    def _selected_id(self) -> int | None:
        idxs = self.view.table.selectionModel().selectedRows()
        if not idxs:
            return None
        src = self.proxy.mapToSource(idxs[0])
        return self.base.at(src.row()).client_id

    def _update_details(self, *args):
        cid = self._selected_id()
        c = self.repo.get(cid) if cid else None
        if c is None:
            self.view.details.setText("No client selected.")
            return
        docs = self.repo.document_count(c.client_id)
        lines = [
            f"<b>{html.escape(c.name)}</b>",
            f"NIF: {html.escape(c.tax_id or '-')}",
            f"Phone: {html.escape(c.phone or '-')}",
            f"Email: {html.escape(c.email or '-')}",
            f"Address: {html.escape(c.address or '-')}",
            f"{html.escape(c.city)} {html.escape(c.country)}".strip(),
            f"Documents: {docs}",
        ]
        self.view.details.setText("<br>".join(lines))

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    def _add(self):
        dlg = ClientForm(self.view)
        if not dlg.exec():
            return
        cid = run_guarded(self.view, "Client", self.repo.create, logger=logger, **dlg.payload())
        if cid:
            info(self.view, "Saved", f"Client #{cid} created.")
            self._reload()

    def _edit(self):
        cid = self._selected_id()
        if not cid:
            info(self.view, "Select", "Please select a client to edit.")
            return
        dlg = ClientForm(self.view, initial=self.repo.get(cid).__dict__)
        if not dlg.exec():
            return
        run_guarded(self.view, "Client", self.repo.update, cid, logger=logger, **dlg.payload())
        self._reload()

    def _delete(self):
        cid = self._selected_id()
        if not cid:
            info(self.view, "Select", "Please select a client to delete.")
            return
        if not confirm(self.view, "Delete client", f"Delete client #{cid}?"):
            return
        run_guarded(self.view, "Client", self.repo.delete, cid, logger=logger)
        self._reload()
