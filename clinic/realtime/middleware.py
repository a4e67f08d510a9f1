"""
WebSocket authentication.

Browsers cannot set an Authorization header on a WebSocket handshake,
so the access token travels as ``?token=<jwt>``.  The resolved user (or
``AnonymousUser``) is placed in ``scope['user']``.
"""
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken

User = get_user_model()


@database_sync_to_async
def _user_for_token(raw: str):
    try:
        token = AccessToken(raw)
    except TokenError:
        return AnonymousUser()
    user_id = token.get(api_settings.USER_ID_CLAIM)
    user = User.objects.filter(**{api_settings.USER_ID_FIELD: user_id}).first()
    if user is None or not user.is_active:
        return AnonymousUser()
    return user


class JWTQueryAuthMiddleware(BaseMiddleware):
    async def __call__(self, scope, receive, send):
        params = parse_qs((scope.get('query_string') or b'').decode())
        raw = (params.get('token') or [''])[0]
        scope = dict(scope)
        scope['user'] = await _user_for_token(raw) if raw else AnonymousUser()
        return await super().__call__(scope, receive, send)
