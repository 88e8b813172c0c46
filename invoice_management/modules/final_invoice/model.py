from ...modules.invoice_utilities.status import label
from ...widgets.rows_model import RowsTableModel


class FinalInvoicesTableModel(RowsTableModel):
    HEADERS = ["Number", "Date", "Due", "Client", "Total", "Status", "Paid on", "Proforma"]

    def values(self, f):
        return [
            f.number,
            f.issue_date,
            f.due_date,
            f.client_name or f"Client {f.client_id}",
            f.total,
            label(f.status),
            f.payment_date or "",
            f.proforma_number or "",
        ]
