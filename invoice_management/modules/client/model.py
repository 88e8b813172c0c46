from ...widgets.rows_model import RowsTableModel


class ClientsTableModel(RowsTableModel):
    HEADERS = ["ID", "Name", "NIF", "Phone", "Email", "City"]

    def values(self, r):
        return [r.client_id, r.name, r.tax_id, r.phone, r.email, r.city]
