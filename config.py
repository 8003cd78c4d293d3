import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./wallet.db")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))
    ENABLE_SENTRY = data.get("ENABLE_SENTRY", 0)
    DSN_SENTRY = data.get("DSN_SENTRY", "")
    SENTRY_ENVIRONMENT = data.get("SENTRY_ENVIRONMENT", "dev")

    # Wallet limits
    DEFAULT_CURRENCY = data.get("DEFAULT_CURRENCY", "INR")
    SUPPORTED_CURRENCIES = data.get("SUPPORTED_CURRENCIES", ["INR", "USD", "EUR", "GBP", "AUD", "CAD"])
    TOPUP_MIN_AMOUNT = data.get("TOPUP_MIN_AMOUNT", "0.01")
    TOPUP_MAX_AMOUNT = data.get("TOPUP_MAX_AMOUNT", "100000")
    ADMIN_ADJUSTMENT_MAX = data.get("ADMIN_ADJUSTMENT_MAX", "500000")
    DAILY_TOPUP_LIMIT = data.get("DAILY_TOPUP_LIMIT", None)  # None disables the check

    # Ledger compare-and-swap retry
    LEDGER_MAX_ATTEMPTS = data.get("LEDGER_MAX_ATTEMPTS", 5)
    LEDGER_BASE_DELAY_SECONDS = data.get("LEDGER_BASE_DELAY_SECONDS", 0.01)
    LEDGER_MAX_DELAY_SECONDS = data.get("LEDGER_MAX_DELAY_SECONDS", 0.5)

    # Payment gateway (no URL -> mock gateway)
    PAYMENT_GATEWAY_URL = data.get("PAYMENT_GATEWAY_URL", None)
    PAYMENT_GATEWAY_API_KEY = data.get("PAYMENT_GATEWAY_API_KEY", None)
    PAYMENT_GATEWAY_WEBHOOK_SECRET = data.get("PAYMENT_GATEWAY_WEBHOOK_SECRET", None)
    PAYMENT_SESSION_TTL_MINUTES = data.get("PAYMENT_SESSION_TTL_MINUTES", 15)

    # Stale top-up sweep
    TOPUP_TIMEOUT_MINUTES = data.get("TOPUP_TIMEOUT_MINUTES", 30)
    TOPUP_SWEEP_ENABLED = bool(data.get("TOPUP_SWEEP_ENABLED", True))
    TOPUP_SWEEP_INTERVAL_SECONDS = data.get("TOPUP_SWEEP_INTERVAL_SECONDS", 300)

    # Wallet reconciliation
    RECONCILIATION_ENABLED = bool(data.get("RECONCILIATION_ENABLED", True))
    RECONCILIATION_INTERVAL_SECONDS = data.get("RECONCILIATION_INTERVAL_SECONDS", 86400)  # Daily
