# adega_delivery/src/core/config.py
from __future__ import annotations
from dataclasses import dataclass
import os
import logging

# Mongo settings
MONGO_URI: str = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB: str = os.getenv("MONGO_DB", "adega")
MONGO_PRODUCTS_COL: str = os.getenv("MONGO_PRODUCTS_COL", "products")
MONGO_DISTRIBUTORS_COL: str = os.getenv("MONGO_DISTRIBUTORS_COL", "distributors")
MONGO_ORDERS_COL: str = os.getenv("MONGO_ORDERS_COL", "orders")
MONGO_ADMINS_COL: str = os.getenv("MONGO_ADMINS_COL", "admin_users")
MONGO_SETTINGS_COL: str = os.getenv("MONGO_SETTINGS_COL", "store_settings")

# Data-access boundary: bounded timeouts, retries only for reads
MONGO_SERVER_SELECTION_TIMEOUT_MS: int = int(os.getenv("MONGO_SERVER_SELECTION_TIMEOUT_MS", "3000"))
MONGO_CONNECT_TIMEOUT_MS: int = int(os.getenv("MONGO_CONNECT_TIMEOUT_MS", "3000"))
MONGO_SOCKET_TIMEOUT_MS: int = int(os.getenv("MONGO_SOCKET_TIMEOUT_MS", "5000"))
MONGO_RETRY_ATTEMPTS: int = int(os.getenv("MONGO_RETRY_ATTEMPTS", "3"))
MONGO_RETRY_BACKOFF_S: float = float(os.getenv("MONGO_RETRY_BACKOFF_S", "0.2"))

# "mongo" in production, "memory" for local demos
DATA_BACKEND: str = os.getenv("DATA_BACKEND", "mongo").lower()
SEED_DEMO_DATA: bool = os.getenv("SEED_DEMO_DATA", "1") not in ("0", "false", "no")

ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@adega.local")
ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "admin")
ADMIN_SESSION_TTL_SECONDS: int = int(os.getenv("ADMIN_SESSION_TTL_SECONDS", str(24 * 60 * 60)))
CART_SESSION_TTL_SECONDS: int = int(os.getenv("CART_SESSION_TTL_SECONDS", "7200"))

PORT: int = int(os.getenv("PORT", "8000"))

# Business constants
LOW_STOCK_THRESHOLD: int = 10
FEATURED_LIMIT: int = 8
ESTIMATED_DELIVERY_MINUTES: int = 45
TOP_PRODUCTS_LIMIT: int = 5
LOW_STOCK_REPORT_LIMIT: int = 10
REPORT_RANGES_DAYS = (7, 30, 90)
PREFERENCES_NAMESPACE: str = "app-storage"


@dataclass(frozen=True)
class Paths:
    ROOT: str = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
    DATA_DIR: str = os.path.join(ROOT, "data")
    PREFERENCES: str = os.getenv("PREFERENCES_PATH", os.path.join(ROOT, "data", "preferences.json"))


# Global logging (module-level loggers inherit this)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
LOGGER = logging.getLogger("adega_delivery")
