from .controller import DeliveryNoteController

__all__ = ["DeliveryNoteController"]
