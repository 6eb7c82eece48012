"""Django settings for the class registration service.

Every deployment-specific value comes from the environment.
"""

import os
from pathlib import Path

from config.logging import setup_logging

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name: str, default: bool = False) -> bool:
    return os.environ.get(name, str(default)).lower() in {"1", "true", "yes", "on"}


def env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "insecure-dev-key")
DEBUG = env_bool("DJANGO_DEBUG")
ALLOWED_HOSTS = env_list("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "registrations.apps.RegistrationsConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASES = {
    "default": {
        "ENGINE": os.environ.get("DATABASE_ENGINE", "django.db.backends.sqlite3"),
        "NAME": os.environ.get("DATABASE_NAME", str(BASE_DIR / "db.sqlite3")),
        "USER": os.environ.get("DATABASE_USER", ""),
        "PASSWORD": os.environ.get("DATABASE_PASSWORD", ""),
        "HOST": os.environ.get("DATABASE_HOST", ""),
        "PORT": os.environ.get("DATABASE_PORT", ""),
    }
}

CACHES = {
    "default": {
        "BACKEND": os.environ.get(
            "CACHE_BACKEND", "django.core.cache.backends.locmem.LocMemCache"
        ),
        "LOCATION": os.environ.get("CACHE_LOCATION", "registrations"),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True
TIME_ZONE = "UTC"
STATIC_URL = "static/"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
}

EMAIL_BACKEND = os.environ.get(
    "EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend"
)
DEFAULT_FROM_EMAIL = os.environ.get("DEFAULT_FROM_EMAIL", "registrations@localhost")
# Format: "Name <email>,Other <email>"; operators receive escalation alerts.
ADMINS = [
    (entry.split("<")[0].strip(), entry.split("<")[-1].rstrip(">").strip())
    for entry in env_list("DJANGO_ADMINS")
]

REGISTRATIONS = {
    "STRIPE_API_KEY": os.environ.get("STRIPE_API_KEY", ""),
    "STRIPE_WEBHOOK_SECRET": os.environ.get("STRIPE_WEBHOOK_SECRET", ""),
    "CURRENCY": os.environ.get("STRIPE_CURRENCY", "usd"),
    "WEBFLOW_API_TOKEN": os.environ.get("WEBFLOW_API_TOKEN", ""),
    "WEBFLOW_CLASSES_COLLECTION_ID": os.environ.get("WEBFLOW_CLASSES_COLLECTION_ID", ""),
    "WEBFLOW_PURCHASES_COLLECTION_ID": os.environ.get("WEBFLOW_PURCHASES_COLLECTION_ID", ""),
    "AUDIENCE_SEGMENTS": tuple(env_list("AUDIENCE_SEGMENTS", "member,non-member")),
    "NETWORK_TIMEOUT": float(os.environ.get("NETWORK_TIMEOUT", "10")),
    "LEDGER_MAX_ATTEMPTS": int(os.environ.get("LEDGER_MAX_ATTEMPTS", "3")),
    "FAN_OUT_ATTEMPTS": int(os.environ.get("FAN_OUT_ATTEMPTS", "3")),
    "LEASE_TTL_SECONDS": int(os.environ.get("LEASE_TTL_SECONDS", "600")),
    "PAYMENT_SWEEP_INTERVAL_SECONDS": int(os.environ.get("PAYMENT_SWEEP_INTERVAL_SECONDS", "300")),
    "PAYMENT_SWEEP_LOOKBACK_MINUTES": int(os.environ.get("PAYMENT_SWEEP_LOOKBACK_MINUTES", "60")),
    "RECONCILIATION_INTERVAL_SECONDS": int(
        os.environ.get("RECONCILIATION_INTERVAL_SECONDS", "300")
    ),
    "WAITLIST_INTERVAL_SECONDS": int(os.environ.get("WAITLIST_INTERVAL_SECONDS", "900")),
    "WORKER_POLL_SECONDS": float(os.environ.get("WORKER_POLL_SECONDS", "5")),
}

LOGGING_CONFIG = None
setup_logging(os.environ.get("LOG_LEVEL", "INFO"), debug=DEBUG)
