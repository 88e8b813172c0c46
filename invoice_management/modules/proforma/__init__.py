from .controller import ProformaController

__all__ = ["ProformaController"]
