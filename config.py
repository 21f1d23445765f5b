# /config.py
import os
import logging


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y")


# --- Environment & Ports ---
ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "4321"))
ALLOWED_ORIGINS = [
    "https://activistchecklist.org",
    "https://localhost:3000",
    "https://localhost:3001",
]

# --- IP Anonymization ---
# Server-side secret appended to every daily hash. Empty means the digest is
# sha256(ip + day_key) only.
IP_HASH_SALT = os.getenv("IP_HASH_SALT", "")
# Day key is the UTC calendar date unless this is disabled (then host-local).
IP_DAY_KEY_UTC = _env_flag("IP_DAY_KEY_UTC", "true")
# Honour X-Forwarded-For / X-Real-IP when resolving the client address
TRUST_PROXY_HEADERS = _env_flag("TRUST_PROXY_HEADERS", "true")
# Access log filter: "anonymize_ip" or "remove_ip"
ACCESS_LOG_IP_FILTER = os.getenv("ACCESS_LOG_IP_FILTER", "anonymize_ip")
# Middleware replaces the ASGI client with the anonymized address. uvicorn.access
# then already logs the anonymized value, so the access filter leaves it alone.
ANONYMIZE_SCOPE_CLIENT = _env_flag("ANONYMIZE_SCOPE_CLIENT", "true")

if not IP_HASH_SALT:
    logging.warning("IP_HASH_SALT is not set; anonymized IPs rely on the daily key only.")

# --- Rate Limits (requests per window, per client) ---
GLOBAL_RATE_LIMIT = int(os.getenv("GLOBAL_RATE_LIMIT", "100"))
GLOBAL_RATE_WINDOW_SECONDS = int(os.getenv("GLOBAL_RATE_WINDOW_SECONDS", "60"))
SUBSCRIBE_RATE_LIMIT = int(os.getenv("SUBSCRIBE_RATE_LIMIT", "5"))
SUBSCRIBE_RATE_WINDOW_SECONDS = int(os.getenv("SUBSCRIBE_RATE_WINDOW_SECONDS", str(15 * 60)))
COUNTER_RATE_LIMIT = int(os.getenv("COUNTER_RATE_LIMIT", "200"))
COUNTER_RATE_WINDOW_SECONDS = int(os.getenv("COUNTER_RATE_WINDOW_SECONDS", "60"))

# --- Umami Analytics ---
# Cloud: UMAMI_API_KEY + UMAMI_WEBSITE_ID
# Self-hosted: UMAMI_WEBSITE_ID + UMAMI_API_CLIENT_USER_ID + UMAMI_API_CLIENT_SECRET
UMAMI_API_KEY = os.getenv("UMAMI_API_KEY", "")
UMAMI_WEBSITE_ID = os.getenv("UMAMI_WEBSITE_ID", "")
UMAMI_API_CLIENT_USER_ID = os.getenv("UMAMI_API_CLIENT_USER_ID", "")
UMAMI_API_CLIENT_SECRET = os.getenv("UMAMI_API_CLIENT_SECRET", "")
UMAMI_HOST = os.getenv("UMAMI_API_CLIENT_ENDPOINT") or os.getenv("UMAMI_HOST", "")
UMAMI_CLOUD_HOST = "https://cloud.umami.is"
UMAMI_TIMEOUT_SECONDS = float(os.getenv("UMAMI_TIMEOUT_SECONDS", "10"))

# --- Listmonk Newsletter ---
LISTMONK_API_URL = os.getenv("LISTMONK_API_URL", "")
LISTMONK_API_USER = os.getenv("LISTMONK_API_USER", "")
LISTMONK_API_TOKEN = os.getenv("LISTMONK_API_TOKEN", "")
LISTMONK_USE_TOKEN_AUTH = _env_flag("LISTMONK_USE_TOKEN_AUTH", "false")
LISTMONK_DEFAULT_LIST_ID = int(os.getenv("LISTMONK_DEFAULT_LIST_ID", "3"))
LISTMONK_TIMEOUT_SECONDS = float(os.getenv("LISTMONK_TIMEOUT_SECONDS", "10"))

# --- Contact Form (PGP-encrypted mail via Resend) ---
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_API_URL = "https://api.resend.com/emails"
CONTACT_PUBLIC_KEY_PATH = os.getenv(
    "CONTACT_PUBLIC_KEY_PATH",
    os.path.join(os.path.dirname(__file__), "public", "files", "publickey.contact@activistchecklist.org.asc"),
)
CONTACT_FROM = os.getenv("CONTACT_FROM", "Activist Checklist Contact Form <contact@activistchecklist.org>")
CONTACT_TO = os.getenv("CONTACT_TO", "contact@activistchecklist.org")
CONTACT_MAX_BODY_BYTES = 10 * 1024
CONTACT_MAX_MESSAGE_CHARS = 5000

# --- Security Headers ---
HSTS_MAX_AGE_SECONDS = 180 * 24 * 60 * 60
