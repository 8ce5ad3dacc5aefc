"""
Runtime settings for the Excel reformatting service.

Values are read once at import time from environment variables and fall
back to the defaults below.
"""
import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

LOG_DIR = os.getenv("EXCEL_LOG_DIR", os.path.join(BASE_DIR, "logs"))
LOG_LEVEL = os.getenv("EXCEL_LOG_LEVEL", "INFO").upper()

# Upload preconditions checked before any file is decoded
MAX_UPLOAD_BYTES = int(os.getenv("EXCEL_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
MAX_UPLOAD_FILES = int(os.getenv("EXCEL_MAX_UPLOAD_FILES", "10"))
ALLOWED_EXTENSIONS = (".xlsx", ".xls")

# Output file naming
OUTPUT_PREFIX = os.getenv("EXCEL_OUTPUT_PREFIX", "Tong hop thong tin phap luat moi")
REINDEX_SUFFIX = os.getenv("EXCEL_REINDEX_SUFFIX", "_reindexed")

API_VERSION = "2.0.0"
