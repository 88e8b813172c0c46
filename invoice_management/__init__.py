"""
Invoicing desktop application: clients, products, proforma and final
invoices, delivery notes and the État 104 tax summary.
"""

__version__ = "1.0.0"
