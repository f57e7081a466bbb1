"""Permissions for the REST API."""

from rest_framework.permissions import BasePermission

from apps.registry.client import UNAUTHENTICATED_MESSAGE, Credential


class HasRegistryCredential(BasePermission):
    """Only requests carrying a usable registry credential get through."""

    message = UNAUTHENTICATED_MESSAGE

    def has_permission(self, request, view) -> bool:
        return isinstance(request.auth, Credential) and request.auth.is_valid
