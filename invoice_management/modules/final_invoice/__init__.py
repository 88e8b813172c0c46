from .controller import FinalInvoiceController

__all__ = ["FinalInvoiceController"]
