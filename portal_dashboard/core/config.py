# /portal_dashboard/core/config.py

import os
from typing import List
from dotenv import load_dotenv

# --- CONFIGURATION ---
# Values come from the environment (or a local .env file) so the same build
# can point at a local portal API or a deployed one.
load_dotenv()

PORTAL_API_URL = os.getenv("PORTAL_API_URL", "http://localhost:5000/api").rstrip("/")
PORTAL_API_TIMEOUT = float(os.getenv("PORTAL_API_TIMEOUT", "15"))

SESSION_STORE_PATH = os.getenv("SESSION_STORE_PATH", ".portal_session.json")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def get_cors_origins() -> List[str]:
    """Parses CORS_ALLOW_ORIGINS as a comma separated list; '*' when unset."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]
