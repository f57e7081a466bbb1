"""
Django development settings for the Guardpost staffing console.

These settings extend base.py with development-specific configuration.
DEBUG is enabled, the browsable API is on and the registry client waits
longer for a locally run registry.

Usage:
    export DJANGO_SETTINGS_MODULE=config.settings.development
    python manage.py runserver
"""

from decouple import config

from .base import *  # noqa: F401, F403

# =============================================================================
# DEBUG CONFIGURATION
# =============================================================================

DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ["localhost", "127.0.0.1", "[::1]"]


# =============================================================================
# STATIC FILES (Development - no compression)
# =============================================================================

# Use simple storage in development for faster reloads
STORAGES = {  # noqa: F405
    "default": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
    },
    "staticfiles": {
        "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
    },
}


# =============================================================================
# SHIFT REGISTRY (Development)
# =============================================================================

# Longer timeout for a locally run registry
REGISTRY["TIMEOUT"] = config("REGISTRY_TIMEOUT", default=30, cast=int)  # noqa: F405


# =============================================================================
# REST FRAMEWORK (Development)
# =============================================================================

REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = [  # noqa: F405
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",  # Enable browsable API
]


# =============================================================================
# LOGGING (More verbose in development)
# =============================================================================

LOGGING["loggers"]["django"]["level"] = "DEBUG"  # noqa: F405
LOGGING["loggers"]["apps"]["level"] = "DEBUG"  # noqa: F405
