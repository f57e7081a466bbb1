"""Django app configuration for registry app."""

from django.apps import AppConfig


class RegistryConfig(AppConfig):
    """Configuration for the shift registry application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.registry"
    verbose_name = "Shift registry"
