"""
Product catalogue screen.

- ProductController: product CRUD (code, name, unit price, VAT rate, stock).
"""

from .controller import ProductController

__all__ = ["ProductController"]
