from .controller import ClientController

__all__ = ["ClientController"]
