"""
Homster service configuration.

Values are read from the process environment. Entry points call
load_dotenv() before importing this module so a local .env file applies.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Authentication
JWT_SECRET = os.getenv("JWT_SECRET", "homster-dev-secret")
JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", f"{JWT_SECRET}-refresh")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))
REFRESH_TOKEN_EXPIRE_MINUTES = int(os.getenv("REFRESH_TOKEN_EXPIRE_MINUTES", "43200"))

if "JWT_SECRET" not in os.environ:
    logger.warning("JWT_SECRET not set, using development secret")

# Pricing and settlement
GST_PERCENTAGE = float(os.getenv("GST_PERCENTAGE", "18"))
COMMISSION_PERCENTAGE = float(os.getenv("COMMISSION_PERCENTAGE", "10"))
VENDOR_CASH_LIMIT = float(os.getenv("VENDOR_CASH_LIMIT", "10000"))
TDS_PERCENTAGE = float(os.getenv("TDS_PERCENTAGE", "2"))
MIN_WALLET_TOPUP = float(os.getenv("MIN_WALLET_TOPUP", "100"))

# Vendor dispatch
VENDOR_SEARCH_RADIUS_KM = float(os.getenv("VENDOR_SEARCH_RADIUS_KM", "10"))
ALERT_WINDOW_SECONDS = int(os.getenv("ALERT_WINDOW_SECONDS", "60"))
ALERT_WAVE_SIZE = int(os.getenv("ALERT_WAVE_SIZE", "5"))

# Geocoding (defaults to Indore city centre)
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")
DEFAULT_LATITUDE = float(os.getenv("DEFAULT_LATITUDE", "22.7196"))
DEFAULT_LONGITUDE = float(os.getenv("DEFAULT_LONGITUDE", "75.8577"))

# Payments
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "")

# Realtime
REDIS_URL = os.getenv("REDIS_URL", "")
FRONTEND_URL = os.getenv("FRONTEND_URL", "*")


def cors_origins() -> list[str]:
    """Allowed CORS origins, comma separated in FRONTEND_URL."""
    return [origin.strip() for origin in FRONTEND_URL.split(",") if origin.strip()]
