# flake8: noqa
"""
Base settings shared by every environment of the ledger backend.

Environment modules (dev, production, test) import everything from here and
override database, security and logging values.
"""

import os
from pathlib import Path

from decouple import config as env_config

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# =============================================================================
# APPLICATIONS
# =============================================================================

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "rest_framework",
    "ledger",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "core.urls"

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

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# =============================================================================
# INTERNATIONALIZATION
# =============================================================================

LANGUAGE_CODE = "en-us"
TIME_ZONE = env_config("TIME_ZONE", default="America/Sao_Paulo")
USE_I18N = True
USE_TZ = True

# =============================================================================
# REST FRAMEWORK
# =============================================================================

REST_FRAMEWORK = {
    "COERCE_DECIMAL_TO_STRING": True,
    "DATE_FORMAT": "%Y-%m-%d",
}

# =============================================================================
# LEDGER ENGINE CONFIGURATION
# =============================================================================
# Tunables consumed by ledger.services.build_ledger_services()

LEDGER = {
    # Invoices pre-generated after each closing
    "FUTURE_INVOICES_COUNT": env_config("LEDGER_FUTURE_INVOICES_COUNT", default=2, cast=int),
    # Occurrences generated for a recurring series (besides the master)
    "RECURRING_OCCURRENCES_LIMIT": env_config(
        "LEDGER_RECURRING_OCCURRENCES_LIMIT", default=24, cast=int
    ),
    # Recurring occurrences never go further than this past the master date
    "RECURRING_HORIZON_YEARS": env_config("LEDGER_RECURRING_HORIZON_YEARS", default=2, cast=int),
    # Hard ceiling on installments per series
    "MAX_INSTALLMENTS": env_config("LEDGER_MAX_INSTALLMENTS", default=120, cast=int),
}

# =============================================================================
# LOGGING
# =============================================================================

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "structured": {
            "format": "{asctime} [{levelname}] {name}: {message}",
            "style": "{",
        },
        "simple": {
            "format": "[{levelname}] {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "formatter": "structured",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "ledger": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
