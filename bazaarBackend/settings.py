"""
Django settings for the bazaarBackend project.

Values are read from the environment so the same module serves local
development, CI and production. Business tunables (commission defaults,
notification and event bus backends) live at the bottom.
"""

import os
from decimal import Decimal
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get("SECRET_KEY")
if not SECRET_KEY:
    raise ValueError("SECRET_KEY environment variable is required")

DEBUG = os.environ.get("DEBUG", "False").lower() in ("1", "true", "yes")

ALLOWED_HOSTS = [host for host in os.environ.get("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if host]

TESTING = False


# Application definition

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "authentication",
    "marketplace",
    "payment_system",
    "activity",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

AUTH_USER_MODEL = "authentication.CustomUser"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# Database

DB_ENGINE = os.environ.get("DB_ENGINE", "django.db.backends.sqlite3")

if DB_ENGINE == "django.db.backends.mysql":
    DATABASES = {
        "default": {
            "ENGINE": DB_ENGINE,
            "NAME": os.environ.get("DB_NAME", "bazaar"),
            "USER": os.environ.get("DB_USER", "bazaar"),
            "PASSWORD": os.environ.get("DB_PASSWORD", ""),
            "HOST": os.environ.get("DB_HOST", "localhost"),
            "PORT": os.environ.get("DB_PORT", "3306"),
            "OPTIONS": {
                "isolation_level": "read committed",
            },
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": DB_ENGINE,
            "NAME": os.environ.get("DB_NAME", str(BASE_DIR / "db.sqlite3")),
        }
    }


# Internationalization

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


# Logging

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {name} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "authentication": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "marketplace": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "payment_system": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "activity": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "infrastructure": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}


# Marketplace business settings

# Fallback commission percentage when no CommissionRate matches an order
DEFAULT_COMMISSION_RATE = Decimal(os.environ.get("DEFAULT_COMMISSION_RATE", "10.00"))

# Notifications: 'database' persists activity.Notification rows, 'mock' keeps them in memory
NOTIFICATION_SINK_BACKEND = os.environ.get("NOTIFICATION_SINK_BACKEND", "database")

# Domain events: 'redis' for pub/sub across processes, 'memory' for in-process dispatch
EVENT_BUS_BACKEND = os.environ.get("EVENT_BUS_BACKEND", "redis")
EVENT_BUS_REDIS_URL = os.environ.get("EVENT_BUS_REDIS_URL", "redis://localhost:6379/0")
EVENT_BUS_CHANNEL_PREFIX = os.environ.get("EVENT_BUS_CHANNEL_PREFIX", "events")

# Tracing
TRACING_ENABLED = os.environ.get("TRACING_ENABLED", "False").lower() in ("1", "true", "yes")
TRACING_SERVICE_NAME = os.environ.get("TRACING_SERVICE_NAME", "bazaar-backend")
