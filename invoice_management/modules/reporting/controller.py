# invoice_management/modules/reporting/controller.py
from __future__ import annotations

import sqlite3
from importlib import import_module
from typing import Optional

from PySide6.QtWidgets import QWidget, QVBoxLayout, QTabWidget, QLabel

from ..base_module import BaseModule
from ...session import Session
from ...utils.loggers import get_logger

logger = get_logger(__name__)


def _placeholder_tab(msg: str) -> QWidget:
    w = QWidget()
    lay = QVBoxLayout(w)
    lbl = QLabel(msg)
    lbl.setWordWrap(True)
    lay.addWidget(lbl)
    return w


def _safe_import_widget(
    module_path: str,
    class_name: str,
    conn: sqlite3.Connection,
    placeholder_msg: str,
) -> QWidget:
    """
    Import a tab widget class. On failure, log the traceback and return a
    small placeholder tab so the module keeps loading.
    """
    try:
        mod = import_module(module_path, package=__package__)
        Cls = getattr(mod, class_name)
        return Cls(conn)
    except Exception:
        logger.exception("Reporting tab %s failed to load from %s", class_name, module_path)
        return _placeholder_tab(f"{placeholder_msg}\n\n({module_path}.{class_name} failed to load)")


class ReportingController(BaseModule):
    """
    Tabbed reporting module.

    Tabs:
      1) État 104 (monthly TVA declaration)
    """

    def __init__(self, conn: sqlite3.Connection, session: Optional[Session] = None) -> None:
        super().__init__()
        self.conn = conn
        self.session = session

        self._root = QWidget()
        self._root.setObjectName("ReportingModuleRoot")
        layout = QVBoxLayout(self._root)
        layout.setContentsMargins(0, 0, 0, 0)

        self.tabs = QTabWidget(self._root)
        self.tabs.setObjectName("ReportingTabs")
        self.tabs.setDocumentMode(True)
        layout.addWidget(self.tabs)

        self.etat104 = _safe_import_widget(
            ".etat104_tab", "Etat104Tab", self.conn, "État 104 tab failed to load."
        )
        self.tabs.addTab(self.etat104, "État 104")

    def get_widget(self) -> QWidget:
        return self._root
