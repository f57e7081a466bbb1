"""
Registry settings with defaults.

Projects override any of these through the ``REGISTRY`` dict in settings:

    REGISTRY = {
        "BASE_URL": "https://registry.example.com",
        "TIMEOUT": 5,
    }
"""

from django.conf import settings

DEFAULTS = {
    "BASE_URL": "http://localhost:8080",
    "TIMEOUT": 10,
    "DAY_PAGE_SIZE": 50,
    "WEEK_PAGE_SIZE": 50,
    "MONTH_PAGE_SIZE": 100,
    "MAX_PAGES": 20,
    "PLACEHOLDER": "—",
    "GUARD_PLACEHOLDER": "—",
    "DATE_LABEL_FORMAT": "%d.%m.%Y",
    "TIME_LABEL_FORMAT": "%H:%M",
}


def registry_setting(name: str):
    """Look up a registry setting, falling back to the built-in default."""
    overrides = getattr(settings, "REGISTRY", None) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
