APP_NAME = "Invoice Management"
DATA_DIR = "data"
DB_FILE_NAME = "invoices.db"
STYLE_FILE = "resources/style.qss"

LOG_DIR = "logs"
LOG_FILE_NAME = "invoice_management.log"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1.0.0"

CURRENCY = "DZD"
