"""
Bearer token authentication for the API.

Tokens are JSON Web Tokens issued by ``rest_framework_simplejwt`` at
login/registration.  This subclass keeps a stable import path for the
project's configuration and adds the deactivated-account check that the
login endpoint also applies.
"""
from __future__ import annotations

from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication


class BearerAuthentication(JWTAuthentication):
    """Resolve the caller from an ``Authorization: Bearer <jwt>`` header."""

    www_authenticate_realm = 'api'

    def get_user(self, validated_token):
        user = super().get_user(validated_token)
        if not user.is_active:
            raise AuthenticationFailed('Account is deactivated', code='user_inactive')
        return user
