"""
ConceptAI Configuration
Every setting comes from the environment (or a local .env file).
"""
import os

from dotenv import load_dotenv

# Load secret keys and configuration from .env file
load_dotenv()

# ============================================================================
# SUPABASE (auth + user_profiles table)
# ============================================================================
SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
# Only the payment webhook uses this; it bypasses row level security
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
PROFILES_TABLE = "user_profiles"

# Name of the cookie checked when no Authorization header is sent
AUTH_COOKIE_NAME = os.getenv("AUTH_COOKIE_NAME", "sb-access-token")

# ============================================================================
# STRIPE (one-time lifetime payment)
# ============================================================================
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY", "")
STRIPE_PRICE_ID = os.getenv("STRIPE_PRICE_ID", "")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
STRIPE_API_VERSION = os.getenv("STRIPE_API_VERSION", "2025-11-17.clover")

# Public URL of the frontend, used for checkout redirects
APP_URL = os.getenv("APP_URL", "http://localhost:3000").rstrip("/")

# ============================================================================
# GEMINI
# ============================================================================
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

# ============================================================================
# SERVER
# ============================================================================
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "10"))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", APP_URL).split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
