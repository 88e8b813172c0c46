import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME, LOG_DIR, LOG_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR

# INVOICE_DB_PATH points the app at another database file (tests, demos)
DB_PATH = Path(os.environ.get("INVOICE_DB_PATH") or DATA_PATH / DB_FILE_NAME)

LOG_LEVEL = os.environ.get("INVOICE_LOG_LEVEL", "INFO").upper()
LOG_TO_FILE = os.environ.get("INVOICE_LOG_FILE", "1") != "0"
LOG_PATH = BASE_DIR / LOG_DIR / LOG_FILE_NAME

# seconds sqlite waits on a locked database before raising
BUSY_TIMEOUT = float(os.environ.get("INVOICE_BUSY_TIMEOUT", "5"))

TEMPLATES_PATH = BASE_DIR / "resources" / "templates"
