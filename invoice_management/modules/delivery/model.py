from ...modules.invoice_utilities.status import label
from ...widgets.rows_model import RowsTableModel


class DeliveryNotesTableModel(RowsTableModel):
    HEADERS = ["Number", "Issued", "Client", "Status", "Delivered", "Invoice", "Carrier"]

    def values(self, d):
        return [
            d.number,
            d.issue_date,
            d.client_name or f"Client {d.client_id}",
            label(d.status),
            d.delivery_date or "",
            d.final_invoice_number or "",
            d.delivery_company or "",
        ]
