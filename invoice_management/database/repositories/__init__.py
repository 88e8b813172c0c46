# database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from invoice_management.database.repositories import (
        ClientsRepo, Client,
        ProductsRepo, Product,
        InvoiceItemsRepo, InvoiceItem,
        ProformaRepo, ProformaInvoice,
        FinalInvoicesRepo, FinalInvoice,
        DeliveryNotesRepo, DeliveryNote,
        CompanyRepo, CompanyInfo,
        UsersRepo, ReportingRepo, DashboardRepo,
    )
"""

# ---------------- Parties & catalogue ----------------
from .clients_repo import ClientsRepo, Client
from .products_repo import ProductsRepo, Product
from .company_repo import CompanyRepo, CompanyInfo

# ---------------- Documents ----------------
from .invoice_items_repo import InvoiceItemsRepo, InvoiceItem, LINK_TABLES
from .proforma_repo import ProformaRepo, ProformaInvoice
from .final_invoices_repo import FinalInvoicesRepo, FinalInvoice
from .delivery_notes_repo import DeliveryNotesRepo, DeliveryNote

# ---------------- Users / read models ----------------
from .users_repo import UsersRepo
from .reporting_repo import ReportingRepo
from .dashboard_repo import DashboardRepo

__all__ = [
    "ClientsRepo",
    "Client",
    "ProductsRepo",
    "Product",
    "CompanyRepo",
    "CompanyInfo",
    "InvoiceItemsRepo",
    "InvoiceItem",
    "LINK_TABLES",
    "ProformaRepo",
    "ProformaInvoice",
    "FinalInvoicesRepo",
    "FinalInvoice",
    "DeliveryNotesRepo",
    "DeliveryNote",
    "UsersRepo",
    "ReportingRepo",
    "DashboardRepo",
]
