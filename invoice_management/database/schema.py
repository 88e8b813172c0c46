from pathlib import Path
import sqlite3
import sys

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CORE TABLES ======================== */

/* -------- company (single row, printed on every document) -------- */
CREATE TABLE IF NOT EXISTS company_info (
    company_id          INTEGER PRIMARY KEY CHECK (company_id = 1),
    business_name       TEXT NOT NULL,
    address             TEXT NOT NULL DEFAULT '',
    tax_id              TEXT NOT NULL DEFAULT '',
    commerce_reg_number TEXT NOT NULL DEFAULT '',
    phone               TEXT NOT NULL DEFAULT '',
    email               TEXT NOT NULL DEFAULT '',
    updated_at          TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

/* -------- users -------- */
CREATE TABLE IF NOT EXISTS users (
    user_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    email           TEXT UNIQUE NOT NULL COLLATE NOCASE,
    password_hash   TEXT NOT NULL,
    name            TEXT NOT NULL,
    role            TEXT NOT NULL DEFAULT 'viewer'
                    CHECK (role IN ('admin','accountant','salesperson','viewer')),
    is_active       INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0,1)),
    is_confirmed    INTEGER NOT NULL DEFAULT 1 CHECK (is_confirmed IN (0,1)),
    created_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    last_login      TIMESTAMP,
    failed_attempts INTEGER NOT NULL DEFAULT 0,
    locked_until    TIMESTAMP
);

CREATE TABLE IF NOT EXISTS audit_logs (
    log_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id     INTEGER,
    action_type TEXT NOT NULL,
    table_name  TEXT,
    record_id   TEXT,
    details     TEXT,
    created_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE SET NULL
);

/* -------- document numbering: one row per prefix ('P-2025-') -------- */
CREATE TABLE IF NOT EXISTS document_sequences (
    prefix     TEXT PRIMARY KEY,
    last_value INTEGER NOT NULL CHECK (last_value >= 0)
);

/* -------- parties & catalogue -------- */
CREATE TABLE IF NOT EXISTS clients (
    client_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    name       TEXT NOT NULL CHECK (TRIM(name) <> ''),
    address    TEXT NOT NULL DEFAULT '',
    tax_id     TEXT NOT NULL DEFAULT '',
    phone      TEXT NOT NULL DEFAULT '',
    email      TEXT NOT NULL DEFAULT '',
    country    TEXT NOT NULL DEFAULT '',
    city       TEXT NOT NULL DEFAULT '',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_clients_name ON clients(name);

/* money and quantities are decimal TEXT; CHECKs cast for range tests */
CREATE TABLE IF NOT EXISTS products (
    product_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    code           TEXT UNIQUE NOT NULL CHECK (TRIM(code) <> ''),
    name           TEXT NOT NULL CHECK (TRIM(name) <> ''),
    description    TEXT NOT NULL DEFAULT '',
    unit_price     TEXT NOT NULL CHECK (CAST(unit_price AS REAL) >= 0),
    tax_rate       TEXT NOT NULL CHECK (CAST(tax_rate AS REAL) >= 0),
    stock_quantity INTEGER NOT NULL DEFAULT 0 CHECK (stock_quantity >= 0),
    created_at     TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at     TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

/* -------- documents: headers -------- */
CREATE TABLE IF NOT EXISTS proforma_invoices (
    proforma_id      INTEGER PRIMARY KEY AUTOINCREMENT,
    number           TEXT UNIQUE NOT NULL,
    client_id        INTEGER NOT NULL,
    issue_date       DATE NOT NULL,
    due_date         DATE NOT NULL,
    notes            TEXT NOT NULL DEFAULT '',
    payment_type     TEXT NOT NULL DEFAULT 'cheque' CHECK (payment_type IN ('cheque','cash')),
    stamp_tax        TEXT NOT NULL DEFAULT '0' CHECK (CAST(stamp_tax AS REAL) >= 0),
    subtotal         TEXT NOT NULL CHECK (CAST(subtotal AS REAL) >= 0),
    tax_total        TEXT NOT NULL CHECK (CAST(tax_total AS REAL) >= 0),
    total            TEXT NOT NULL CHECK (CAST(total AS REAL) >= 0),
    status           TEXT NOT NULL DEFAULT 'draft'
                     CHECK (status IN ('draft','sent','approved','rejected')),
    final_invoice_id INTEGER,
    created_by       INTEGER,
    created_at       TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at       TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    /* a converted proforma is always an approved one */
    CHECK (final_invoice_id IS NULL OR status = 'approved'),
    FOREIGN KEY (client_id)        REFERENCES clients(client_id),
    FOREIGN KEY (final_invoice_id) REFERENCES final_invoices(final_invoice_id),
    FOREIGN KEY (created_by)       REFERENCES users(user_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_proforma_issue_date ON proforma_invoices(issue_date);
CREATE INDEX IF NOT EXISTS idx_proforma_status     ON proforma_invoices(status);

CREATE TABLE IF NOT EXISTS final_invoices (
    final_invoice_id  INTEGER PRIMARY KEY AUTOINCREMENT,
    number            TEXT UNIQUE NOT NULL,
    client_id         INTEGER NOT NULL,
    issue_date        DATE NOT NULL,
    due_date          DATE NOT NULL,
    notes             TEXT NOT NULL DEFAULT '',
    payment_type      TEXT NOT NULL DEFAULT 'cheque' CHECK (payment_type IN ('cheque','cash')),
    stamp_tax         TEXT NOT NULL DEFAULT '0' CHECK (CAST(stamp_tax AS REAL) >= 0),
    subtotal          TEXT NOT NULL CHECK (CAST(subtotal AS REAL) >= 0),
    tax_total         TEXT NOT NULL CHECK (CAST(tax_total AS REAL) >= 0),
    total             TEXT NOT NULL CHECK (CAST(total AS REAL) >= 0),
    status            TEXT NOT NULL DEFAULT 'unpaid'
                      CHECK (status IN ('unpaid','paid','cancelled','credited')),
    proforma_id       INTEGER UNIQUE,
    payment_date      DATE,
    payment_reference TEXT,
    created_by        INTEGER,
    created_at        TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at        TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    CHECK (status <> 'paid' OR payment_date IS NOT NULL),
    FOREIGN KEY (client_id)   REFERENCES clients(client_id),
    FOREIGN KEY (proforma_id) REFERENCES proforma_invoices(proforma_id),
    FOREIGN KEY (created_by)  REFERENCES users(user_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_final_issue_date ON final_invoices(issue_date);
CREATE INDEX IF NOT EXISTS idx_final_client     ON final_invoices(client_id);

CREATE TABLE IF NOT EXISTS delivery_notes (
    delivery_note_id INTEGER PRIMARY KEY AUTOINCREMENT,
    number           TEXT UNIQUE NOT NULL,
    client_id        INTEGER NOT NULL,
    final_invoice_id INTEGER,
    issue_date       DATE NOT NULL,
    delivery_date    DATE,
    notes            TEXT NOT NULL DEFAULT '',
    status           TEXT NOT NULL DEFAULT 'pending'
                     CHECK (status IN ('pending','delivered','cancelled')),
    delivery_company TEXT,
    driver_name      TEXT,
    truck_id         TEXT,
    created_by       INTEGER,
    created_at       TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at       TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (client_id)        REFERENCES clients(client_id),
    FOREIGN KEY (final_invoice_id) REFERENCES final_invoices(final_invoice_id) ON DELETE SET NULL,
    FOREIGN KEY (created_by)       REFERENCES users(user_id) ON DELETE SET NULL
);
CREATE INDEX IF NOT EXISTS idx_delivery_issue_date ON delivery_notes(issue_date);

/* -------- line items + one join table per document kind -------- */
CREATE TABLE IF NOT EXISTS invoice_items (
    item_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    product_id INTEGER,
    quantity   TEXT NOT NULL CHECK (CAST(quantity AS REAL) >= 1),
    unit_price TEXT NOT NULL CHECK (CAST(unit_price AS REAL) >= 0),
    tax_rate   TEXT NOT NULL CHECK (CAST(tax_rate AS REAL) >= 0),
    discount   TEXT NOT NULL DEFAULT '0'
               CHECK (CAST(discount AS REAL) >= 0 AND CAST(discount AS REAL) <= 100),
    total_excl TEXT NOT NULL,
    total_tax  TEXT NOT NULL,
    total      TEXT NOT NULL,
    FOREIGN KEY (product_id) REFERENCES products(product_id) ON DELETE SET NULL
);

/* item_id is the key of each link table: an item has at most one owner per kind */
CREATE TABLE IF NOT EXISTS proforma_invoice_items (
    item_id     INTEGER PRIMARY KEY,
    proforma_id INTEGER NOT NULL,
    position    INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (item_id)     REFERENCES invoice_items(item_id) ON DELETE CASCADE,
    FOREIGN KEY (proforma_id) REFERENCES proforma_invoices(proforma_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_pii_proforma ON proforma_invoice_items(proforma_id);

CREATE TABLE IF NOT EXISTS final_invoice_items (
    item_id          INTEGER PRIMARY KEY,
    final_invoice_id INTEGER NOT NULL,
    position         INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (item_id)          REFERENCES invoice_items(item_id) ON DELETE CASCADE,
    FOREIGN KEY (final_invoice_id) REFERENCES final_invoices(final_invoice_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_fii_final ON final_invoice_items(final_invoice_id);

CREATE TABLE IF NOT EXISTS delivery_note_items (
    item_id          INTEGER PRIMARY KEY,
    delivery_note_id INTEGER NOT NULL,
    position         INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (item_id)          REFERENCES invoice_items(item_id) ON DELETE CASCADE,
    FOREIGN KEY (delivery_note_id) REFERENCES delivery_notes(delivery_note_id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_dni_note ON delivery_note_items(delivery_note_id);

/* ======================== TRIGGERS ======================== */

/* a line item is never shared across documents */
DROP TRIGGER IF EXISTS trg_pii_exclusive;
CREATE TRIGGER trg_pii_exclusive
BEFORE INSERT ON proforma_invoice_items
WHEN EXISTS (SELECT 1 FROM final_invoice_items WHERE item_id = NEW.item_id)
  OR EXISTS (SELECT 1 FROM delivery_note_items WHERE item_id = NEW.item_id)
BEGIN
  SELECT RAISE(ABORT, 'Line item already belongs to another document');
END;

DROP TRIGGER IF EXISTS trg_fii_exclusive;
CREATE TRIGGER trg_fii_exclusive
BEFORE INSERT ON final_invoice_items
WHEN EXISTS (SELECT 1 FROM proforma_invoice_items WHERE item_id = NEW.item_id)
  OR EXISTS (SELECT 1 FROM delivery_note_items WHERE item_id = NEW.item_id)
BEGIN
  SELECT RAISE(ABORT, 'Line item already belongs to another document');
END;

DROP TRIGGER IF EXISTS trg_dni_exclusive;
CREATE TRIGGER trg_dni_exclusive
BEFORE INSERT ON delivery_note_items
WHEN EXISTS (SELECT 1 FROM proforma_invoice_items WHERE item_id = NEW.item_id)
  OR EXISTS (SELECT 1 FROM final_invoice_items WHERE item_id = NEW.item_id)
BEGIN
  SELECT RAISE(ABORT, 'Line item already belongs to another document');
END;

/* the back-reference on a final invoice must name a proforma that points at it */
DROP TRIGGER IF EXISTS trg_proforma_link_target;
CREATE TRIGGER trg_proforma_link_target
BEFORE UPDATE OF final_invoice_id ON proforma_invoices
WHEN NEW.final_invoice_id IS NOT NULL
 AND NOT EXISTS (
     SELECT 1 FROM final_invoices
      WHERE final_invoice_id = NEW.final_invoice_id
        AND proforma_id = NEW.proforma_id
 )
BEGIN
  SELECT RAISE(ABORT, 'Final invoice does not reference this proforma');
END;
"""


def init_schema(db_path: Path | str) -> None:
    """Apply the (idempotent) schema to `db_path`, creating the file if needed."""
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.executescript(SQL)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    from ..config import DB_PATH

    target = sys.argv[1] if len(sys.argv) > 1 else DB_PATH
    init_schema(target)
    print(f"✓ DB applied to {target}")
