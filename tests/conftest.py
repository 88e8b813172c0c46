# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - pytest-qt owns QApplication (use qapp/qtbot fixtures)
# - Every test gets its own fresh SQLite file under tmp_path
# - Schema + company row come from get_connection(); no default admin
# - One user per role, with Session fixtures to pass to workflows
# - Silence benign Qt signal warnings
# ---------------------------------------------------------------------

from __future__ import annotations

import os
import re

# before the package reads its config / Qt picks a platform
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("INVOICE_LOG_FILE", "0")

import pytest
from PySide6 import QtCore

from invoice_management.database import get_connection
from invoice_management.database.repositories.clients_repo import ClientsRepo
from invoice_management.database.repositories.products_repo import ProductsRepo
from invoice_management.database.repositories.users_repo import UsersRepo
from invoice_management.session import Session
from invoice_management.utils.auth import hash_password


# ---------- Qt: let pytest-qt own the app ----------
@pytest.fixture(scope="session")
def app(qapp):  # alias to match code that expects an `app` fixture
    return qapp


# ---------- Silence benign Qt warnings ----------
_BENIGN_QT_PATTERNS = [
    r"^QObject::connect: .* already connected",
    r"^QObject::disconnect: Unexpected null parameter",
    r"^QBasicTimer::stop: Failed\. Platform timer not running\.",
    r"^This plugin does not support propagateSizeHints",
]

@pytest.fixture(autouse=True, scope="session")
def _silence_benign_qt():
    """Filter common harmless Qt messages during tests."""
    original = QtCore.qInstallMessageHandler(None)
    rx = [re.compile(p) for p in _BENIGN_QT_PATTERNS]

    def handler(msg_type, context, message):
        text = str(message)
        for r in rx:
            if r.search(text):
                return  # swallow benign messages
        # pass everything else through the default handler
        QtCore.qInstallMessageHandler(None)
        try:
            QtCore.qDebug(message)
        finally:
            QtCore.qInstallMessageHandler(handler)

    QtCore.qInstallMessageHandler(handler)
    try:
        yield
    finally:
        QtCore.qInstallMessageHandler(original)


# ---------- Per-test database ----------
@pytest.fixture()
def conn(tmp_path):
    """A fresh database file with schema and the company row applied."""
    con = get_connection(tmp_path / "invoices.db", seed_admin=False)
    try:
        yield con
    finally:
        con.close()


# ---------- Users / sessions ----------
TEST_PASSWORD = "secret123"

def _make_session(conn, role: str) -> Session:
    email = f"{role}@example.com"
    uid = UsersRepo(conn).insert_user(
        email=email,
        password_hash=hash_password(TEST_PASSWORD, rounds=4),
        name=role.title(),
        role=role,
    )
    return Session(user_id=uid, email=email, name=role.title(), role=role)


@pytest.fixture()
def admin(conn) -> Session:
    return _make_session(conn, "admin")


@pytest.fixture()
def accountant(conn) -> Session:
    return _make_session(conn, "accountant")


@pytest.fixture()
def sales(conn) -> Session:
    return _make_session(conn, "salesperson")


@pytest.fixture()
def viewer(conn) -> Session:
    return _make_session(conn, "viewer")


# ---------- Handy catalogue rows ----------
@pytest.fixture()
def client_id(conn) -> int:
    return ClientsRepo(conn).create("Sarl Atlas", tax_id="000123456789012", city="Alger", country="DZ")


@pytest.fixture()
def other_client_id(conn) -> int:
    return ClientsRepo(conn).create("Eurl Numidia", tax_id="000987654321098", city="Oran", country="DZ")


@pytest.fixture()
def product_id(conn) -> int:
    return ProductsRepo(conn).create("WID-A", "Widget A", "1000", "19", stock_quantity=10)


@pytest.fixture()
def cheap_product_id(conn) -> int:
    return ProductsRepo(conn).create("BOLT", "Bolt M8", "2.50", "9")
