import os
from decimal import Decimal

from celery.schedules import crontab


def get_bool_from_env(name, default_value):
    if name in os.environ:
        value = os.environ[name]
        return value.lower() in ("true", "1", "yes", "y", "on")
    return default_value


PROJECT_ROOT = os.path.normpath(os.path.join(os.path.dirname(__file__), ".."))

DEBUG = get_bool_from_env("DEBUG", True)

SECRET_KEY = os.environ.get("SECRET_KEY")
if not SECRET_KEY and DEBUG:
    SECRET_KEY = "ordefy-development-secret-key"

ALLOWED_HOSTS = os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")

TIME_ZONE = os.environ.get("TIME_ZONE", "America/Asuncion")
USE_TZ = True
LANGUAGE_CODE = "en"

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "ordefy.core",
    "ordefy.account",
    "ordefy.product",
    "ordefy.shipping",
    "ordefy.order",
    "ordefy.inventory",
    "ordefy.warehouse",
    "ordefy.settlement",
]

DATABASE_CONNECTION_DEFAULT_NAME = "default"

DATABASES = {
    DATABASE_CONNECTION_DEFAULT_NAME: {
        "ENGINE": os.environ.get(
            "DATABASE_ENGINE", "django.db.backends.postgresql"
        ),
        "NAME": os.environ.get("DATABASE_NAME", "ordefy"),
        "USER": os.environ.get("DATABASE_USER", "ordefy"),
        "PASSWORD": os.environ.get("DATABASE_PASSWORD", "ordefy"),
        "HOST": os.environ.get("DATABASE_HOST", "localhost"),
        "PORT": os.environ.get("DATABASE_PORT", "5432"),
        "CONN_MAX_AGE": int(os.environ.get("DB_CONN_MAX_AGE", 0)),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "PYG")
DEFAULT_CURRENCY_CODE_LENGTH = 3
DEFAULT_MAX_DIGITS = 12
DEFAULT_DECIMAL_PLACES = 2

# Per store and per day, e.g. PREP-18012026-001 .. PREP-18012026-999
REFERENCE_CODE_DAILY_LIMIT = int(os.environ.get("REFERENCE_CODE_DAILY_LIMIT", 999))

SETTLEMENT_DEFAULT_CARRIER_RATE = Decimal(
    os.environ.get("SETTLEMENT_DEFAULT_CARRIER_RATE", "25000")
)
SETTLEMENT_DEFAULT_FAILED_ATTEMPT_FEE_PERCENT = Decimal(
    os.environ.get("SETTLEMENT_DEFAULT_FAILED_ATTEMPT_FEE_PERCENT", "50")
)
SETTLEMENT_DISCREPANCY_TOLERANCE = Decimal("0.01")

# Any absolute difference above this is surfaced by the stock checks
STOCK_RECONCILIATION_ALERT_THRESHOLD = int(
    os.environ.get("STOCK_RECONCILIATION_ALERT_THRESHOLD", 0)
)

CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_TASK_ALWAYS_EAGER = get_bool_from_env("CELERY_TASK_ALWAYS_EAGER", False)
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_BEAT_SCHEDULE = {
    "check-stock-discrepancies": {
        "task": "ordefy.inventory.tasks.check_stock_discrepancies_task",
        "schedule": crontab(hour=3, minute=0),
    },
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "root": {"level": "INFO", "handlers": ["default"]},
    "formatters": {
        "verbose": {
            "format": (
                "%(levelname)s %(name)s %(message)s "
                "[PID:%(process)d:%(threadName)s]"
            )
        },
    },
    "handlers": {
        "default": {
            "level": "DEBUG",
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django": {"level": "INFO", "propagate": True},
        "ordefy": {"level": "DEBUG" if DEBUG else "INFO", "propagate": True},
        "celery": {"level": "INFO", "propagate": True},
    },
}
