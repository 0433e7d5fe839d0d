import os

from dotenv import load_dotenv

# Load .env before reading any environment variables
load_dotenv()

# Settings store: SQL when a database URL is set, else a JSON file, else memory
DB_URL = os.getenv("DATABASE_URL") or os.getenv("DB_URL")
# SQLAlchemy requires the "postgresql://" scheme (not legacy "postgres://").
if DB_URL and DB_URL.startswith("postgres://"):
    DB_URL = "postgresql://" + DB_URL[len("postgres://"):]
SETTINGS_FILE = os.getenv("DELIVERY_SETTINGS_FILE")

SHOPIFY_ADMIN_TOKEN = os.getenv("SHOPIFY_ADMIN_TOKEN")
SHOPIFY_API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2026-01")

# Product tag lookup
TAGS_CACHE_TTL_SECONDS = float(os.getenv("TAGS_CACHE_TTL_SECONDS", "8"))
TAG_LOOKUP_BATCH_SIZE = max(1, min(100, int(os.getenv("TAG_LOOKUP_BATCH_SIZE", "100"))))
TAG_LOOKUP_TIMEOUT_SECS = float(os.getenv("TAG_LOOKUP_TIMEOUT_SECS", "10"))

# Upper bound on day-by-day searches for the next business day
HOLIDAY_SEARCH_LIMIT = int(os.getenv("HOLIDAY_SEARCH_LIMIT", "366"))

# Ceiling for lead time and range, in days
MAX_WINDOW_DAYS = int(os.getenv("MAX_WINDOW_DAYS", "3650"))

ADMIN_KEY = os.getenv("ADMIN_KEY") or os.getenv("BOT_ADMIN_KEY")
