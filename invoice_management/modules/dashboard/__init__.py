"""
Dashboard module package exports.
"""

from .controller import DashboardController
from .view import DashboardView

__all__ = [
    "DashboardController",
    "DashboardView",
]
