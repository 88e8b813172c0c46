"""
invoice_utilities/workflow.py

Every state-changing operation on proformas, final invoices and delivery
notes. Each public method:

  1. checks the session role (PermissionDenied),
  2. validates input before touching the database (ValidationError),
  3. runs inside one transaction that re-reads the document after the write
     lock is taken, so status checks see committed state,
  4. logs the committed transition at INFO.

A failure anywhere inside step 3 rolls the whole operation back.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Iterable, Mapping, Optional
import sqlite3

from ...database.numbering import (
    generate_delivery_note_number,
    generate_invoice_number,
    generate_proforma_number,
)
from ...database.repositories.clients_repo import ClientsRepo
from ...database.repositories.delivery_notes_repo import TRANSPORT_FIELDS, DeliveryNote, DeliveryNotesRepo
from ...database.repositories.final_invoices_repo import FinalInvoice, FinalInvoicesRepo
from ...database.repositories.invoice_items_repo import InvoiceItemsRepo
from ...database.repositories.products_repo import ProductsRepo
from ...database.repositories.proforma_repo import ProformaInvoice, ProformaRepo
from ...database.transactions import transaction
from ...errors import ValidationError
from ...session import DOCUMENT_EDITORS, FINANCE_EDITORS, Session, require_role
from ...utils.helpers import today_str
from ...utils.loggers import get_logger
from ...utils.validators import is_iso_date
from .calculations import LineInput, compute_totals, validate_line, validate_payment_type
from .status import (
    DELIVERY_NOTE,
    FINAL_INVOICE,
    PROFORMA,
    ensure_can_convert,
    ensure_can_undo_approve,
    ensure_can_undo_convert,
    ensure_deletable,
    ensure_editable,
    next_state,
)

logger = get_logger(__name__)

DEFAULT_PAYMENT_TERM_DAYS = 30


def _field(line: Any, name: str) -> Any:
    if isinstance(line, Mapping):
        return line.get(name)
    return getattr(line, name, None)


def _date(value: Optional[str], label: str, *, document: str, ref: object, operation: str) -> str:
    if not is_iso_date(value):
        raise ValidationError(
            f"{label} must be a date in YYYY-MM-DD form (got {value!r}).",
            document=document, ref=ref, operation=operation,
        )
    return str(value)


class _WorkflowBase:
    def __init__(self, conn: sqlite3.Connection, session: Optional[Session]):
        self.conn = conn
        self.session = session
        self.clients = ClientsRepo(conn)
        self.products = ProductsRepo(conn)
        self.items = InvoiceItemsRepo(conn)
        self.proformas = ProformaRepo(conn)
        self.invoices = FinalInvoicesRepo(conn)
        self.notes = DeliveryNotesRepo(conn)

    @property
    def _user_id(self) -> Optional[int]:
        return self.session.user_id if self.session else None

    def _require(self, allowed, operation: str, document: str, ref: object = None) -> None:
        require_role(self.session, allowed, operation=operation, document=document, ref=ref)

    def _dates(
        self,
        issue_date: Optional[str],
        due_date: Optional[str],
        *,
        document: str,
        ref: object,
        operation: str,
    ) -> tuple[str, str]:
        issue = _date(issue_date or today_str(), "Issue date", document=document, ref=ref, operation=operation)
        if due_date is None:
            due = (date.fromisoformat(issue) + timedelta(days=DEFAULT_PAYMENT_TERM_DAYS)).isoformat()
        else:
            due = _date(due_date, "Due date", document=document, ref=ref, operation=operation)
        if due < issue:
            raise ValidationError(
                f"Due date {due} is before issue date {issue}.",
                document=document, ref=ref, operation=operation,
            )
        return issue, due

    def _priced_lines(
        self,
        lines: Iterable[Any],
        *,
        document: str,
        ref: object,
        operation: str,
        price_optional: bool = False,
    ) -> list[LineInput]:
        """
        Validate lines, filling unit price and tax rate from the catalogue
        when a line names a product but leaves them out.
        """
        out: list[LineInput] = []
        for n, line in enumerate(lines, start=1):
            product_id = _field(line, "product_id")
            unit_price = _field(line, "unit_price")
            tax_rate = _field(line, "tax_rate")
            if product_id is not None and (unit_price is None or tax_rate is None):
                product = self.products.require(int(product_id))
                unit_price = product.unit_price if unit_price is None else unit_price
                tax_rate = product.tax_rate if tax_rate is None else tax_rate
            if price_optional:
                unit_price = 0 if unit_price is None else unit_price
                tax_rate = 0 if tax_rate is None else tax_rate
            try:
                out.append(
                    validate_line(
                        {
                            "product_id": product_id,
                            "quantity": _field(line, "quantity"),
                            "unit_price": unit_price,
                            "tax_rate": tax_rate,
                            "discount": _field(line, "discount"),
                        }
                    )
                )
            except ValidationError as e:
                raise ValidationError(
                    f"Line {n}: {e.message}", document=document, ref=ref, operation=operation
                ) from None
        if not out:
            raise ValidationError(
                "A document needs at least one line.", document=document, ref=ref, operation=operation
            )
        return out

    def _require_client(self, client_id: int, *, document: str, ref: object, operation: str) -> int:
        if client_id is None or self.clients.get(int(client_id)) is None:
            raise ValidationError(
                f"Client {client_id} does not exist.", document=document, ref=ref, operation=operation
            )
        return int(client_id)


# ---------------------------------------------------------------------------
# Proformas
# ---------------------------------------------------------------------------

class ProformaWorkflow(_WorkflowBase):
    """Proforma lifecycle, including conversion to a final invoice and its undo."""

    def create_draft(
        self,
        client_id: int,
        lines: Iterable[Any],
        *,
        issue_date: Optional[str] = None,
        due_date: Optional[str] = None,
        notes: str = "",
        payment_type: str = "cheque",
    ) -> ProformaInvoice:
        op = "create"
        self._require(DOCUMENT_EDITORS, op, PROFORMA)
        client_id = self._require_client(client_id, document=PROFORMA, ref=None, operation=op)
        issue, due = self._dates(issue_date, due_date, document=PROFORMA, ref=None, operation=op)
        payment_type = validate_payment_type(payment_type)
        priced = self._priced_lines(lines, document=PROFORMA, ref=None, operation=op)
        totals = compute_totals(priced, payment_type)

        with transaction(self.conn, operation=op, document=PROFORMA):
            number = generate_proforma_number(self.conn, issue)
            pid = self.proformas.insert(
                number=number,
                client_id=client_id,
                issue_date=issue,
                due_date=due,
                notes=(notes or "").strip(),
                payment_type=payment_type,
                stamp_tax=totals.stamp_tax,
                subtotal=totals.subtotal,
                tax_total=totals.tax_total,
                total=totals.total,
                created_by=self._user_id,
            )
            self.items.add_items(PROFORMA, pid, priced)
        logger.info("Created proforma %s (%d lines, total %s)", number, len(priced), totals.total)
        return self.proformas.get(pid)

    def update_draft(
        self,
        proforma_id: int,
        *,
        client_id: Optional[int] = None,
        lines: Optional[Iterable[Any]] = None,
        issue_date: Optional[str] = None,
        due_date: Optional[str] = None,
        notes: Optional[str] = None,
        payment_type: Optional[str] = None,
    ) -> ProformaInvoice:
        """Change a draft's content; totals are recomputed from the (new) lines."""
        op = "edit"
        self._require(DOCUMENT_EDITORS, op, PROFORMA, proforma_id)
        new_lines = None
        if lines is not None:
            new_lines = self._priced_lines(lines, document=PROFORMA, ref=proforma_id, operation=op)

        with transaction(self.conn, operation=op, document=PROFORMA, ref=proforma_id):
            p = self.proformas.require(proforma_id, op)
            ensure_editable(PROFORMA, p.status, ref=p.number)
            patch: dict[str, Any] = {}
            if client_id is not None:
                patch["client_id"] = self._require_client(client_id, document=PROFORMA, ref=p.number, operation=op)
            if issue_date is not None or due_date is not None:
                issue, due = self._dates(
                    issue_date or p.issue_date, due_date or p.due_date,
                    document=PROFORMA, ref=p.number, operation=op,
                )
                patch.update(issue_date=issue, due_date=due)
            if notes is not None:
                patch["notes"] = notes.strip()
            ptype = validate_payment_type(payment_type) if payment_type is not None else p.payment_type
            patch["payment_type"] = ptype

            if new_lines is not None:
                self.items.replace_items(PROFORMA, proforma_id, new_lines)
                basis = new_lines
            else:
                basis = self.items.list_items(PROFORMA, proforma_id)
            totals = compute_totals(basis, ptype)
            patch.update(
                stamp_tax=totals.stamp_tax,
                subtotal=totals.subtotal,
                tax_total=totals.tax_total,
                total=totals.total,
            )
            self.proformas.update(proforma_id, **patch)
        logger.info("Updated proforma %s", p.number)
        return self.proformas.get(proforma_id)

    def _transition(self, proforma_id: int, action: str) -> ProformaInvoice:
        self._require(DOCUMENT_EDITORS, action, PROFORMA, proforma_id)
        with transaction(self.conn, operation=action, document=PROFORMA, ref=proforma_id):
            p = self.proformas.require(proforma_id, action)
            target = next_state(PROFORMA, p.status, action, ref=p.number, converted=p.converted)
            self.proformas.set_status(proforma_id, target)
        logger.info("Proforma %s: %s -> %s (%s)", p.number, p.status, target, action)
        return self.proformas.get(proforma_id)

    def send(self, proforma_id: int) -> ProformaInvoice:
        return self._transition(proforma_id, "send")

    def approve(self, proforma_id: int) -> ProformaInvoice:
        return self._transition(proforma_id, "approve")

    def reject(self, proforma_id: int) -> ProformaInvoice:
        return self._transition(proforma_id, "reject")

    def undo_approve(self, proforma_id: int) -> ProformaInvoice:
        op = "undo_approve"
        self._require(DOCUMENT_EDITORS, op, PROFORMA, proforma_id)
        with transaction(self.conn, operation=op, document=PROFORMA, ref=proforma_id):
            p = self.proformas.require(proforma_id, op)
            ensure_can_undo_approve(p.status, p.final_invoice_id, ref=p.number)
            self.proformas.set_status(proforma_id, "sent")
        logger.info("Proforma %s: approval undone", p.number)
        return self.proformas.get(proforma_id)

    def delete(self, proforma_id: int) -> None:
        op = "delete"
        self._require(DOCUMENT_EDITORS, op, PROFORMA, proforma_id)
        with transaction(self.conn, operation=op, document=PROFORMA, ref=proforma_id):
            p = self.proformas.require(proforma_id, op)
            ensure_deletable(PROFORMA, p.status, ref=p.number, converted=p.converted)
            self.proformas.delete(proforma_id)
        logger.info("Deleted proforma %s", p.number)

    def convert_to_final(self, proforma_id: int) -> tuple[ProformaInvoice, FinalInvoice]:
        """
        Turn an approved proforma into an unpaid final invoice.

        The final invoice copies the proforma's header and money fields and
        takes over its line items; the proforma keeps status 'approved' and
        points at the new invoice. All of it commits or none of it does.
        """
        op = "convert"
        self._require(DOCUMENT_EDITORS, op, PROFORMA, proforma_id)
        with transaction(self.conn, operation=op, document=PROFORMA, ref=proforma_id):
            p = self.proformas.require(proforma_id, op)
            ensure_can_convert(p.status, p.final_invoice_id, ref=p.number)
            number = generate_invoice_number(self.conn, p.issue_date)
            fid = self.invoices.insert(
                number=number,
                client_id=p.client_id,
                issue_date=p.issue_date,
                due_date=p.due_date,
                notes=p.notes,
                payment_type=p.payment_type,
                stamp_tax=p.stamp_tax,
                subtotal=p.subtotal,
                tax_total=p.tax_total,
                total=p.total,
                proforma_id=p.proforma_id,
                created_by=self._user_id,
            )
            moved = self.items.move_links(PROFORMA, p.proforma_id, FINAL_INVOICE, fid)
            self.proformas.set_final_invoice(p.proforma_id, fid)
        logger.info("Converted proforma %s to final invoice %s (%d lines)", p.number, number, moved)
        return self.proformas.get(proforma_id), self.invoices.get(fid)

    def undo_convert_to_final(self, proforma_id: int) -> ProformaInvoice:
        """
        Reverse convert_to_final: lines go back to the proforma, the final
        invoice is deleted and the link cleared. Delivery notes that pointed
        at the invoice are detached by the foreign key.
        """
        op = "undo_convert"
        self._require(FINANCE_EDITORS, op, PROFORMA, proforma_id)
        with transaction(self.conn, operation=op, document=PROFORMA, ref=proforma_id):
            p = self.proformas.require(proforma_id, op)
            ensure_can_undo_convert(p.status, p.final_invoice_id, ref=p.number)
            fid = p.final_invoice_id
            moved = self.items.move_links(FINAL_INVOICE, fid, PROFORMA, p.proforma_id)
            self.proformas.set_final_invoice(p.proforma_id, None)
            self.invoices.delete(fid)
        logger.info(
            "Undid conversion of proforma %s (final invoice %s deleted, %d lines returned)",
            p.number, p.final_invoice_number, moved,
        )
        return self.proformas.get(proforma_id)


# ---------------------------------------------------------------------------
# Final invoices
# ---------------------------------------------------------------------------

class FinalInvoiceWorkflow(_WorkflowBase):
    def create_final_invoice(
        self,
        client_id: int,
        lines: Iterable[Any],
        *,
        issue_date: Optional[str] = None,
        due_date: Optional[str] = None,
        notes: str = "",
        payment_type: str = "cheque",
    ) -> FinalInvoice:
        """A final invoice issued directly, without a proforma."""
        op = "create"
        self._require(FINANCE_EDITORS, op, FINAL_INVOICE)
        client_id = self._require_client(client_id, document=FINAL_INVOICE, ref=None, operation=op)
        issue, due = self._dates(issue_date, due_date, document=FINAL_INVOICE, ref=None, operation=op)
        payment_type = validate_payment_type(payment_type)
        priced = self._priced_lines(lines, document=FINAL_INVOICE, ref=None, operation=op)
        totals = compute_totals(priced, payment_type)

        with transaction(self.conn, operation=op, document=FINAL_INVOICE):
            number = generate_invoice_number(self.conn, issue)
            fid = self.invoices.insert(
                number=number,
                client_id=client_id,
                issue_date=issue,
                due_date=due,
                notes=(notes or "").strip(),
                payment_type=payment_type,
                stamp_tax=totals.stamp_tax,
                subtotal=totals.subtotal,
                tax_total=totals.tax_total,
                total=totals.total,
                created_by=self._user_id,
            )
            self.items.add_items(FINAL_INVOICE, fid, priced)
        logger.info("Created final invoice %s (%d lines, total %s)", number, len(priced), totals.total)
        return self.invoices.get(fid)

    def mark_paid(
        self,
        final_invoice_id: int,
        payment_date: Optional[str] = None,
        payment_reference: Optional[str] = None,
    ) -> FinalInvoice:
        op = "mark_paid"
        self._require(FINANCE_EDITORS, op, FINAL_INVOICE, final_invoice_id)
        paid_on = _date(
            payment_date or today_str(), "Payment date",
            document=FINAL_INVOICE, ref=final_invoice_id, operation=op,
        )
        with transaction(self.conn, operation=op, document=FINAL_INVOICE, ref=final_invoice_id):
            f = self.invoices.require(final_invoice_id, op)
            target = next_state(FINAL_INVOICE, f.status, op, ref=f.number)
            self.invoices.update(
                final_invoice_id,
                status=target,
                payment_date=paid_on,
                payment_reference=(payment_reference or "").strip() or None,
            )
        logger.info("Final invoice %s marked paid on %s", f.number, paid_on)
        return self.invoices.get(final_invoice_id)


# ---------------------------------------------------------------------------
# Delivery notes
# ---------------------------------------------------------------------------

class DeliveryNoteWorkflow(_WorkflowBase):
    @staticmethod
    def _transport(values: Mapping[str, Optional[str]]) -> dict:
        return {k: ((values.get(k) or "").strip() or None) for k in TRANSPORT_FIELDS if k in values}

    @staticmethod
    def _check_transport_keys(transport: Mapping[str, Any], *, ref, op) -> None:
        unknown = set(transport) - set(TRANSPORT_FIELDS)
        if unknown:
            raise ValidationError(
                f"Unexpected delivery note field(s): {', '.join(sorted(unknown))}",
                document=DELIVERY_NOTE, ref=ref, operation=op,
            )

    def _check_invoice_link(self, final_invoice_id: Optional[int], client_id: int, *, ref, op) -> Optional[int]:
        if final_invoice_id is None:
            return None
        f = self.invoices.require(int(final_invoice_id), op)
        if f.client_id != client_id:
            raise ValidationError(
                f"Final invoice {f.number} belongs to another client.",
                document=DELIVERY_NOTE, ref=ref, operation=op,
            )
        return f.final_invoice_id

    def create_delivery_note(
        self,
        client_id: int,
        lines: Iterable[Any],
        *,
        issue_date: Optional[str] = None,
        delivery_date: Optional[str] = None,
        notes: str = "",
        final_invoice_id: Optional[int] = None,
        **transport: Optional[str],
    ) -> DeliveryNote:
        op = "create"
        self._require(DOCUMENT_EDITORS, op, DELIVERY_NOTE)
        self._check_transport_keys(transport, ref=None, op=op)
        client_id = self._require_client(client_id, document=DELIVERY_NOTE, ref=None, operation=op)
        issue = _date(issue_date or today_str(), "Issue date", document=DELIVERY_NOTE, ref=None, operation=op)
        if delivery_date is not None:
            delivery_date = _date(delivery_date, "Delivery date", document=DELIVERY_NOTE, ref=None, operation=op)
        priced = self._priced_lines(
            lines, document=DELIVERY_NOTE, ref=None, operation=op, price_optional=True
        )

        with transaction(self.conn, operation=op, document=DELIVERY_NOTE):
            linked = self._check_invoice_link(final_invoice_id, client_id, ref=None, op=op)
            number = generate_delivery_note_number(self.conn, issue)
            did = self.notes.insert(
                number=number,
                client_id=client_id,
                issue_date=issue,
                delivery_date=delivery_date,
                notes=(notes or "").strip(),
                final_invoice_id=linked,
                created_by=self._user_id,
                **self._transport(transport),
            )
            self.items.add_items(DELIVERY_NOTE, did, priced)
        logger.info("Created delivery note %s (%d lines)", number, len(priced))
        return self.notes.get(did)

    def create_delivery_note_from_invoice(
        self,
        final_invoice_id: int,
        *,
        issue_date: Optional[str] = None,
        notes: str = "",
        **transport: Optional[str],
    ) -> DeliveryNote:
        """Delivery note for a final invoice's client with the invoice's products and quantities."""
        self._require(DOCUMENT_EDITORS, "create", DELIVERY_NOTE)
        f = self.invoices.require(final_invoice_id, "create")
        lines = [
            {
                "product_id": it.product_id,
                "quantity": it.quantity,
                "unit_price": it.unit_price,
                "tax_rate": it.tax_rate,
                "discount": it.discount,
            }
            for it in self.invoices.list_items(final_invoice_id)
        ]
        return self.create_delivery_note(
            f.client_id,
            lines,
            issue_date=issue_date,
            notes=notes,
            final_invoice_id=f.final_invoice_id,
            **transport,
        )

    def update_delivery_note(
        self,
        delivery_note_id: int,
        *,
        lines: Optional[Iterable[Any]] = None,
        issue_date: Optional[str] = None,
        delivery_date: Optional[str] = None,
        notes: Optional[str] = None,
        final_invoice_id: Optional[int] = None,
        **transport: Optional[str],
    ) -> DeliveryNote:
        op = "edit"
        self._require(DOCUMENT_EDITORS, op, DELIVERY_NOTE, delivery_note_id)
        self._check_transport_keys(transport, ref=delivery_note_id, op=op)
        new_lines = None
        if lines is not None:
            new_lines = self._priced_lines(
                lines, document=DELIVERY_NOTE, ref=delivery_note_id, operation=op, price_optional=True
            )

        with transaction(self.conn, operation=op, document=DELIVERY_NOTE, ref=delivery_note_id):
            d = self.notes.require(delivery_note_id, op)
            ensure_editable(DELIVERY_NOTE, d.status, ref=d.number)
            patch: dict[str, Any] = self._transport(transport)
            if issue_date is not None:
                patch["issue_date"] = _date(issue_date, "Issue date", document=DELIVERY_NOTE, ref=d.number, operation=op)
            if delivery_date is not None:
                patch["delivery_date"] = _date(
                    delivery_date, "Delivery date", document=DELIVERY_NOTE, ref=d.number, operation=op
                )
            if notes is not None:
                patch["notes"] = notes.strip()
            if final_invoice_id is not None:
                patch["final_invoice_id"] = self._check_invoice_link(
                    final_invoice_id, d.client_id, ref=d.number, op=op
                )
            if new_lines is not None:
                self.items.replace_items(DELIVERY_NOTE, delivery_note_id, new_lines)
            if patch:
                self.notes.update(delivery_note_id, **patch)
        logger.info("Updated delivery note %s", d.number)
        return self.notes.get(delivery_note_id)

    def mark_delivered(self, delivery_note_id: int, delivery_date: Optional[str] = None) -> DeliveryNote:
        op = "mark_delivered"
        self._require(DOCUMENT_EDITORS, op, DELIVERY_NOTE, delivery_note_id)
        on = _date(
            delivery_date or today_str(), "Delivery date",
            document=DELIVERY_NOTE, ref=delivery_note_id, operation=op,
        )
        with transaction(self.conn, operation=op, document=DELIVERY_NOTE, ref=delivery_note_id):
            d = self.notes.require(delivery_note_id, op)
            target = next_state(DELIVERY_NOTE, d.status, op, ref=d.number)
            self.notes.update(delivery_note_id, status=target, delivery_date=on)
        logger.info("Delivery note %s delivered on %s", d.number, on)
        return self.notes.get(delivery_note_id)

    def delete_delivery_note(self, delivery_note_id: int) -> None:
        op = "delete"
        self._require(DOCUMENT_EDITORS, op, DELIVERY_NOTE, delivery_note_id)
        with transaction(self.conn, operation=op, document=DELIVERY_NOTE, ref=delivery_note_id):
            d = self.notes.require(delivery_note_id, op)
            ensure_deletable(DELIVERY_NOTE, d.status, ref=d.number)
            self.notes.delete(delivery_note_id)
        logger.info("Deleted delivery note %s", d.number)


# ---------------------------------------------------------------------------
# Consistency
# ---------------------------------------------------------------------------

def check_link_consistency(conn: sqlite3.Connection) -> list[str]:
    """
    Human-readable problems with proforma/final-invoice links and item
    ownership. An empty list means the data is consistent.
    """
    problems: list[str] = []
    for row in FinalInvoicesRepo(conn).link_mismatches():
        if row["side"] == "final_invoice":
            problems.append(
                f"Final invoice {row['final_invoice_id']} names proforma {row['proforma_id']}, "
                f"which points at {row['back_ref']}."
            )
        else:
            problems.append(
                f"Proforma {row['proforma_id']} names final invoice {row['final_invoice_id']}, "
                f"which points at {row['back_ref']}."
            )
    rows = conn.execute(
        """
        SELECT item_id, COUNT(*) AS n FROM (
            SELECT item_id FROM proforma_invoice_items
            UNION ALL SELECT item_id FROM final_invoice_items
            UNION ALL SELECT item_id FROM delivery_note_items
        ) GROUP BY item_id HAVING COUNT(*) > 1
        """
    ).fetchall()
    for r in rows:
        problems.append(f"Line item {r[0]} is linked to {r[1]} documents.")
    for r in conn.execute(
        "SELECT proforma_id FROM proforma_invoices WHERE final_invoice_id IS NOT NULL AND status <> 'approved'"
    ):
        problems.append(f"Proforma {r[0]} is converted but not approved.")
    return problems


__all__ = [
    "ProformaWorkflow",
    "FinalInvoiceWorkflow",
    "DeliveryNoteWorkflow",
    "check_link_consistency",
    "DEFAULT_PAYMENT_TERM_DAYS",
]
