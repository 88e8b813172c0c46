from .controller import AdminController

__all__ = ["AdminController"]
