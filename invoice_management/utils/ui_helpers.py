from PySide6.QtWidgets import QWidget, QVBoxLayout, QMessageBox
from PySide6.QtCore import Qt

def wrap_center(w: QWidget) -> QWidget:
    host = QWidget()
    lay = QVBoxLayout(host)
    lay.addStretch(1)
    lay.addWidget(w, 0, Qt.AlignCenter)
    lay.addStretch(1)
    return host

def info(parent: QWidget, title: str, text: str):
    QMessageBox.information(parent, title, text)

def error(parent: QWidget, title: str, text: str):
    QMessageBox.critical(parent, title, text)

def confirm(parent: QWidget, title: str, text: str) -> bool:
    choice = QMessageBox.question(
        parent, title, text,
        QMessageBox.Yes | QMessageBox.No, QMessageBox.No,
    )
    return choice == QMessageBox.Yes


def run_guarded(parent: QWidget, title: str, fn, *args, logger=None, **kwargs):
    """
    Call fn(*args, **kwargs). DomainError text goes to a message box; anything
    else is logged with its traceback and reported as unexpected.
    Returns fn's result, or None on failure.
    """
    from ..errors import DomainError

    try:
        return fn(*args, **kwargs)
    except DomainError as e:
        error(parent, title, e.message)
    except Exception as e:
        if logger is not None:
            logger.exception("%s failed", title)
        error(parent, title, f"Unexpected error: {e}")
    return None


def ask_save_path(parent: QWidget, title: str, default_name: str, file_filter: str) -> str | None:
    """Save-as dialog; returns the chosen path or None when cancelled."""
    from PySide6.QtWidgets import QFileDialog

    path, _ = QFileDialog.getSaveFileName(parent, title, default_name, file_filter)
    return path or None
