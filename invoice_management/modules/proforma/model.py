from ...modules.invoice_utilities.status import label
from ...widgets.rows_model import RowsTableModel


class ProformasTableModel(RowsTableModel):
    HEADERS = ["Number", "Date", "Client", "Total", "Status", "Final invoice"]

    def values(self, p):
        return [
            p.number,
            p.issue_date,
            p.client_name or f"Client {p.client_id}",
            p.total,
            label(p.status),
            p.final_invoice_number or "",
        ]
