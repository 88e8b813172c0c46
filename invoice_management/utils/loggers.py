import logging

from ..config import LOG_LEVEL, LOG_PATH, LOG_TO_FILE

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def get_logger(name="invoice_management"):
    """
    Return the app logger (or a child of it, e.g. 'invoice_management.workflow').

    Handlers live on the root app logger only, so children propagate to it and
    repeated calls never stack duplicate handlers.
    """
    root = logging.getLogger("invoice_management")
    if not root.handlers:
        root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(ch)
        if LOG_TO_FILE:
            try:
                LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
                fh = logging.FileHandler(str(LOG_PATH), mode="a", encoding="utf-8", delay=True)
            except OSError:
                root.warning("File logging disabled: cannot write %s", LOG_PATH)
            else:
                fh.setFormatter(logging.Formatter(_FORMAT))
                root.addHandler(fh)
    if name == "invoice_management" or name.startswith("invoice_management."):
        return logging.getLogger(name)
    return root.getChild(name)
