# sharptools/config.py
import os


# ----------------------------
# Server
# ----------------------------
HOST = os.environ.get("SHARPTOOLS_HOST", "0.0.0.0")
PORT = int(os.environ.get("SHARPTOOLS_PORT", os.environ.get("PORT", "8000")))
LOG_LEVEL = os.environ.get("SHARPTOOLS_LOG_LEVEL", "INFO").upper()

# Upload limit (per request, all files together)
MAX_UPLOAD_MB = int(os.environ.get("MAX_UPLOAD_MB", "25"))
MAX_UPLOAD_BYTES = MAX_UPLOAD_MB * 1024 * 1024

# Base URL the split client talks to
SPLIT_ENDPOINT_URL = os.environ.get("SPLIT_ENDPOINT_URL", "http://localhost:8000")
SPLIT_TIMEOUT_SECONDS = float(os.environ.get("SPLIT_TIMEOUT_SECONDS", "60"))


# ----------------------------
# Image to PDF
# ----------------------------
MAX_IMAGES = 50
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")

DEFAULT_ORIENTATION = "portrait"
DEFAULT_MARGIN_MM = 10
DEFAULT_QUALITY = 100

MARGIN_RANGE = (0, 30)
QUALITY_RANGE = (50, 100)

# In-memory collections kept by the server
MAX_COLLECTIONS = int(os.environ.get("MAX_COLLECTIONS", "100"))
COLLECTION_IDLE_SECONDS = int(os.environ.get("COLLECTION_IDLE_SECONDS", "3600"))
