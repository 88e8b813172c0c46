from __future__ import annotations

from ...modules.invoice_utilities.status import KIND_LABELS, VALID_STATES, label
from ...widgets.rows_model import RowsTableModel


class OverdueInvoicesModel(RowsTableModel):
    HEADERS = ["Invoice", "Client", "Due", "Amount"]

    def values(self, r):
        return [r["number"], r.get("client_name") or "", r["due_date"], r["total"]]


class StatusBreakdownModel(RowsTableModel):
    """One row per (document kind, status) with its count."""

    HEADERS = ["Document", "Status", "Count"]

    @staticmethod
    def rows_for(counts_by_kind: dict[str, dict[str, int]]) -> list[tuple[str, str, int]]:
        rows = []
        for kind, counts in counts_by_kind.items():
            for state in VALID_STATES[kind]:
                n = counts.get(state, 0)
                if n:
                    rows.append((KIND_LABELS[kind], label(state), n))
        return rows

    def values(self, r):
        return list(r)
