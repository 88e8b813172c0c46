from .etat104 import build_etat104, Etat104Report, Etat104Row

__all__ = ["build_etat104", "Etat104Report", "Etat104Row"]
