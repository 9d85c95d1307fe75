"""Application configuration values."""
import os
import sys
import json
from typing import List
from pathlib import Path
from dotenv import load_dotenv


# --- Load environment variables ---
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = BASE_DIR.parent

_ENV_ALIASES = {
    "dev": "development",
    "development": "development",
    "prod": "production",
    "production": "production",
    "stage": "staging",
    "staging": "staging",
    "testing": "test",
    "tests": "test",
    "pytest": "test",
    "test": "test",
}

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

CRM_TIMEOUT_MIN_SECONDS = 1.0
CRM_TIMEOUT_MAX_SECONDS = 30.0


def _normalize_env(value: str) -> str:
    normalized = _ENV_ALIASES.get(value.strip().lower(), value.strip().lower())
    return normalized or "production"


def detect_runtime_env() -> str:
    """Determines the current environment (production, staging, development, test)."""
    explicit = (
        os.getenv("APP_ENV")
        or os.getenv("FLASK_ENV")
        or os.getenv("ENV")
        or ""
    ).strip()
    if explicit:
        return _normalize_env(explicit)

    if os.getenv("PYTEST_CURRENT_TEST") or any("pytest" in arg for arg in sys.argv):
        return "test"

    debug_flag = os.getenv("FLASK_DEBUG", "").strip().lower()
    if debug_flag in _TRUE_VALUES:
        return "development"

    return "production"


def _as_float(value, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def init_app_config(app) -> None:
    """Applies values derived from the environment without forcing early evaluation."""
    runtime_env = _normalize_env(
        str(app.config.get("APP_ENV", "") or app.config.get("ENV", "")).strip()
        or detect_runtime_env()
    )
    app.config["APP_ENV"] = runtime_env
    app.config["ENV"] = runtime_env

    if "TESTING" not in app.config:
        app.config["TESTING"] = runtime_env == "test"
    if "DEBUG" not in app.config:
        app.config["DEBUG"] = runtime_env == "development"

    # The session cookie carries flashed form feedback; refuse the dev key in production.
    secret_key = app.config.get("SECRET_KEY") or os.getenv("SECRET_KEY")
    if runtime_env == "production":
        if not secret_key or secret_key == "dev-secret-key":
            raise RuntimeError(
                "FATAL: SECRET_KEY non è definita per la produzione. "
                "Imposta SECRET_KEY con un valore casuale e sicuro prima di avviare l'applicazione."
            )
    if secret_key:
        app.config["SECRET_KEY"] = secret_key

    # The missing key is reported per submission, not at startup.
    api_key = app.config.get("BREVO_API_KEY")
    if isinstance(api_key, str):
        api_key = api_key.strip()
    app.config["BREVO_API_KEY"] = api_key or None
    if not app.config.get("BREVO_API_URL"):
        app.config["BREVO_API_URL"] = "https://api.brevo.com/v3/contacts"

    timeout = _as_float(app.config.get("CRM_TIMEOUT_SECONDS"), 8.0)
    app.config["CRM_TIMEOUT_SECONDS"] = max(CRM_TIMEOUT_MIN_SECONDS, min(CRM_TIMEOUT_MAX_SECONDS, timeout))

    app.config["CRM_MAX_RETRIES"] = max(0, _as_int(app.config.get("CRM_MAX_RETRIES"), 0))

    if not app.config.get("THANK_YOU_URL"):
        app.config["THANK_YOU_URL"] = "/richiesta-inviata"


def parse_list_env(name: str) -> List[str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return []
    if raw.startswith("["):
        try:
            return [str(s) for s in json.loads(raw)]
        except ValueError:
            return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def parse_bool_env(name: str, default=False):
    """Reads a boolean flag; returns ``default`` when unset or unrecognized."""
    raw = os.getenv(name, "").strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    return default


class Config:
    # Flask secret key (signs flashed form feedback)
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

    _runtime = detect_runtime_env()
    TESTING = _runtime == "test"
    ENV = _runtime
    DEBUG = _runtime == "development"

    # --- Brevo (CRM) ---
    BREVO_API_KEY = os.getenv("BREVO_API_KEY")
    BREVO_API_URL = os.getenv("BREVO_API_URL", "https://api.brevo.com/v3/contacts")
    CRM_TIMEOUT_SECONDS = _as_float(os.getenv("CRM_TIMEOUT_SECONDS", "8"), 8.0)
    # 0 = no automatic retry; 4xx answers are never retried
    CRM_MAX_RETRIES = _as_int(os.getenv("CRM_MAX_RETRIES", "0"), 0)

    # --- Landing ---
    THANK_YOU_URL = os.getenv("THANK_YOU_URL", "/richiesta-inviata")
    FLOORPLAN_PDF_URL = os.getenv("FLOORPLAN_PDF_URL", "/static/planimetrie/i-tigli.pdf")

    # --- CORS ---
    CORS_ORIGINS = parse_list_env('CORS_ORIGINS')
    CORS_SUPPORTS_CREDENTIALS = parse_bool_env('CORS_SUPPORTS_CREDENTIALS')

    # --- Rate Limiting Configuration ---
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_SUBMIT = os.getenv('RATELIMIT_SUBMIT', '10 per hour')
    # Honor X-Forwarded-For / X-Real-IP when counting requests per client
    TRUST_PROXY_HEADERS = parse_bool_env('TRUST_PROXY_HEADERS', True)

    # --- Logging Configuration ---
    LOG_LEVEL = os.getenv('LOG_LEVEL', None)  # None = auto-detect based on APP_ENV
    LOG_JSON_ENABLED = parse_bool_env('LOG_JSON_ENABLED', None)  # None = JSON only in production

    # --- Sentry Configuration ---
    SENTRY_DSN = os.getenv('SENTRY_DSN')
    SENTRY_ENVIRONMENT = os.getenv('SENTRY_ENVIRONMENT')  # None = auto-detect from APP_ENV
    SENTRY_TRACES_SAMPLE_RATE = max(0.0, min(1.0, _as_float(os.getenv('SENTRY_TRACES_SAMPLE_RATE', '0.1'), 0.1)))
    SENTRY_ENABLE_PROFILING = parse_bool_env('SENTRY_ENABLE_PROFILING')
    # Enable Sentry in development (for testing only)
    SENTRY_ENABLE_IN_DEV = parse_bool_env('SENTRY_ENABLE_IN_DEV')
    APP_VERSION = os.getenv('APP_VERSION')
