"""
Registry credential authentication for the REST API.

The console does not issue tokens itself. The credential issued by the
registry's auth service is passed along untouched, either in the header:
    Authorization: Bearer <token>
or stored in the Django session under ``registry_credential`` as
``{"accessToken": ..., "tokenType": ...}``.
"""

from django.contrib.auth.models import AnonymousUser
from rest_framework import authentication

from apps.registry.client import Credential

SESSION_KEY = "registry_credential"


class RegistryCredentialAuthentication(authentication.BaseAuthentication):
    """
    Resolve the registry credential for a request.

    ``request.auth`` becomes a Credential; ``request.user`` is the Django
    session user when there is one, otherwise anonymous.
    """

    keywords = ("Bearer", "Token")

    def authenticate(self, request):
        """
        Authenticate the request and return a tuple of (user, credential) or None.
        """
        user = getattr(request._request, "user", None) or AnonymousUser()
        auth_header = request.META.get("HTTP_AUTHORIZATION", "")

        if auth_header:
            parts = auth_header.split()

            if len(parts) != 2:
                return None

            keyword, raw_token = parts

            if keyword.lower() not in [k.lower() for k in self.keywords]:
                return None

            return (user, Credential(access_token=raw_token, token_type=keyword))

        session = getattr(request._request, "session", None)
        if session is None:
            return None

        credential = Credential.from_payload(session.get(SESSION_KEY))
        if credential is None:
            return None

        return (user, credential)

    def authenticate_header(self, request):
        """
        Return the value for the WWW-Authenticate header.
        """
        return self.keywords[0]
