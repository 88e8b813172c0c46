import sqlite3
from typing import Optional

from PySide6.QtCore import Qt, QRegularExpression
from PySide6.QtWidgets import QWidget

from ..base_module import BaseModule
from .view import ProductView
from .form import ProductForm
from .model import ProductsTableModel, ProductFilterProxy
from ...database.repositories.products_repo import ProductsRepo
from ...session import DOCUMENT_EDITORS, Session
from ...utils.loggers import get_logger
from ...utils.ui_helpers import info, confirm, run_guarded

logger = get_logger(__name__)


class ProductController(BaseModule):
    def __init__(self, conn: sqlite3.Connection, session: Optional[Session] = None):
        super().__init__()
        self.conn = conn
        self.session = session
        self.repo = ProductsRepo(conn)
        self.view = ProductView()
        self.view.set_editable(session is not None and session.has_role(DOCUMENT_EDITORS))
        self._wire()
        self._reload()

    def get_widget(self) -> QWidget:
        return self.view

    def _wire(self):
        self.view.btn_add.clicked.connect(self._add)
        self.view.btn_edit.clicked.connect(self._edit)
        self.view.btn_del.clicked.connect(self._delete)
        self.view.search.textChanged.connect(self._apply_filter)
        self.view.table.doubleClicked.connect(lambda *_: self._edit())

    def _build_model(self):
        self.base = ProductsTableModel(self.repo.list_products())
        self.proxy = ProductFilterProxy(self.view)
        self.proxy.setSourceModel(self.base)
        self.proxy.setFilterCaseSensitivity(Qt.CaseInsensitive)
        self.view.table.setModel(self.proxy)
        self.view.table.resizeColumnsToContents()

    def _reload(self):
        self._build_model()
        self._apply_filter(self.view.search.text())

    def _apply_filter(self, text: str):
        self.proxy.setFilterRegularExpression(
            QRegularExpression(QRegularExpression.escape(text), QRegularExpression.CaseInsensitiveOption)
        )

    def _selected_id(self) -> int | None:
        idxs = self.view.table.selectionModel().selectedRows()
        if not idxs:
            return None
        src = self.proxy.mapToSource(idxs[0])
        return self.base.at(src.row()).product_id

    def _add(self):
        dlg = ProductForm(self.view)
        if not dlg.exec():
            return
        pid = run_guarded(self.view, "Product", self.repo.create, logger=logger, **dlg.payload())
        if pid:
            info(self.view, "Saved", f"Product #{pid} created.")
            self._reload()

    def _edit(self):
        pid = self._selected_id()
        if not pid:
            info(self.view, "Select", "Please select a product to edit.")
            return
        dlg = ProductForm(self.view, initial_product=self.repo.get(pid))
        if not dlg.exec():
            return
        run_guarded(self.view, "Product", self.repo.update, pid, logger=logger, **dlg.payload())
        self._reload()

    def _delete(self):
        pid = self._selected_id()
        if not pid:
            info(self.view, "Select", "Please select a product to delete.")
            return
        if not confirm(
            self.view, "Delete product",
            f"Delete product #{pid}? Existing document lines keep their snapshot.",
        ):
            return
        run_guarded(self.view, "Product", self.repo.delete, pid, logger=logger)
        self._reload()
