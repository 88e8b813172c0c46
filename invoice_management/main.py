from __future__ import annotations

import sys
from importlib import import_module
from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QSizePolicy,
    QStackedWidget,
    QWidget,
)

from .constants import APP_NAME, STYLE_FILE
from .database import get_connection
from .modules.base_module import BaseModule
from .session import ADMINS, Session
from .utils.loggers import get_logger
from .utils.ui_helpers import wrap_center

logger = get_logger(__name__)

# nav title, controller module (relative to this package), class, roles (None = everyone)
MODULES: tuple[tuple[str, str, str, Optional[tuple[str, ...]]], ...] = (
    ("Dashboard", ".modules.dashboard.controller", "DashboardController", None),
    ("Clients", ".modules.client.controller", "ClientController", None),
    ("Products", ".modules.product.controller", "ProductController", None),
    ("Proformas", ".modules.proforma.controller", "ProformaController", None),
    ("Final invoices", ".modules.final_invoice.controller", "FinalInvoiceController", None),
    ("Delivery notes", ".modules.delivery.controller", "DeliveryNoteController", None),
    ("Reporting", ".modules.reporting.controller", "ReportingController", None),
    ("Administration", ".modules.admin.controller", "AdminController", ADMINS),
)


def load_qss() -> str:
    qss = ""
    f = Path(__file__).resolve().parent / STYLE_FILE
    if f.exists():
        qss = f.read_text(encoding="utf-8")
    return qss


def _lazy_get(name: str, attr: str):
    """Import a module by name and fetch an attribute from it, with a clear error if missing."""
    try:
        mod = import_module(name, package=__package__)
    except Exception as e:
        raise ImportError(f"Failed to import module '{name}': {e}") from e
    try:
        return getattr(mod, attr)
    except AttributeError as e:
        raise ImportError(f"'{attr}' not found in module '{name}'.") from e


class MainWindow(QMainWindow):
    """
    Left navigation + stacked pages. Controllers are created the first time
    their page is opened, with the connection and the signed-in session.
    """

    def __init__(self, conn, session: Session):
        super().__init__()
        self.setWindowTitle(f"{APP_NAME} - {session.name or session.email} ({session.role})")
        self.setWindowFlag(Qt.WindowMinimizeButtonHint, True)
        self.setWindowFlag(Qt.WindowMaximizeButtonHint, True)
        self.setMinimumSize(900, 560)

        self.conn = conn
        self.session = session

        central = QWidget(self)
        row = QHBoxLayout(central)
        self.setCentralWidget(central)

        self.nav = QListWidget()
        self.nav.setObjectName("MainNav")
        self.nav.setFixedWidth(150)
        self.nav.setSizePolicy(QSizePolicy.Fixed, QSizePolicy.Expanding)
        self.stack = QStackedWidget()
        row.addWidget(self.nav)
        row.addWidget(self.stack, 1)

        self.module_info: list[dict] = []
        # index -> loaded controller (None when loading failed)
        self.modules: dict[int, Optional[BaseModule]] = {}

        for title, module_path, class_name, roles in MODULES:
            if roles is not None and not session.has_role(roles):
                continue
            self._add_module_deferred(title, module_path, class_name)

        self.nav.currentRowChanged.connect(self._load_module_at_index)
        if self.nav.count():
            self.nav.setCurrentRow(0)

    # ---------- deferred loading ----------

    def _add_module_deferred(self, title: str, module_path: str, class_name: str) -> None:
        self.module_info.append({"title": title, "module_path": module_path, "class_name": class_name})
        self.nav.addItem(QListWidgetItem(title))
        self.stack.addWidget(wrap_center(QLabel(f"Loading {title}...")))

    def _load_module_at_index(self, index: int) -> None:
        if index < 0 or index >= len(self.module_info):
            return
        if index not in self.modules:
            self._load_module(index)
        self.stack.setCurrentIndex(index)

    def _load_module(self, index: int) -> None:
        info = self.module_info[index]
        QApplication.setOverrideCursor(Qt.WaitCursor)
        try:
            Controller = _lazy_get(info["module_path"], info["class_name"])
            controller = Controller(self.conn, self.session)
            widget = controller.get_widget()
            if hasattr(controller, "navigate"):
                controller.navigate.connect(self.open_module)
            self.modules[index] = controller
        except Exception:
            logger.exception("Module %s failed to load", info["title"])
            widget = wrap_center(QLabel(f"{info['title']}\n\nLoading failed. See the log for details."))
            self.modules[index] = None
        finally:
            QApplication.restoreOverrideCursor()
        placeholder = self.stack.widget(index)
        self.stack.removeWidget(placeholder)
        placeholder.deleteLater()
        self.stack.insertWidget(index, widget)

    def _find_module_info_index(self, title: str) -> int | None:
        for i, info in enumerate(self.module_info):
            if info["title"] == title:
                return i
        return None

    def open_module(self, title: str) -> None:
        idx = self._find_module_info_index(title)
        if idx is not None:
            self.nav.setCurrentRow(idx)

    def controller(self, title: str) -> Optional[BaseModule]:
        """Loaded controller for a nav title (loads it on demand)."""
        idx = self._find_module_info_index(title)
        if idx is None:
            return None
        self._load_module_at_index(idx)
        return self.modules.get(idx)


def main():
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)

    conn = get_connection()

    LoginController = _lazy_get(".modules.login.controller", "LoginController")
    session = LoginController(conn).prompt()
    if session is None:
        logger.info("Login cancelled; exiting")
        return

    qss = load_qss()
    if qss:
        app.setStyleSheet(qss)

    win = MainWindow(conn, session)
    win.resize(1200, 720)
    win.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
