# invoice_management/modules/login/__init__.py

"""
Login module package exports.

- AuthService: sign-in/sign-up/user administration (no Qt).
- LoginController: drives the sign-in dialog on top of AuthService.
"""

from .auth_service import AuthService
from .controller import LoginController

__all__ = [
    "AuthService",
    "LoginController",
]
