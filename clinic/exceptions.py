"""
API error types and the unified exception handler.

Every error leaves the API as ``{"message": ..., "error"?: ...}``.  DRF
exceptions keep their status codes; anything else is logged and turned
into a 500 whose body carries the stack trace outside production.
"""
from __future__ import annotations

import logging
import traceback

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class SlotUnavailable(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Doctor already has an appointment at this time'
    default_code = 'slot_unavailable'


class InvalidTransition(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid status transition'
    default_code = 'invalid_transition'

    def __init__(self, current: str, requested: str, *, subject: str = 'appointment'):
        super().__init__(f'Cannot change {subject} status from {current} to {requested}')


class ProviderError(APIException):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = 'Video provider request failed'
    default_code = 'provider_error'


def server_error_payload(exc: Exception) -> dict:
    payload = {'message': 'Internal server error', 'error': str(exc)}
    if settings.ENV != 'prod':
        payload['stack'] = ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return payload


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.exception('Unhandled error in %s', getattr(view, '__name__', view.__class__.__name__), exc_info=exc)
        return Response(server_error_payload(exc), status=500)
    if isinstance(exc, ValidationError):
        data = {'message': 'Validation failed', 'error': resp.data}
        if isinstance(resp.data, list) and len(resp.data) == 1:
            data['message'] = str(resp.data[0])
        return Response(data, status=resp.status_code, headers=_carry_headers(resp))
    detail = resp.data.get('detail') if isinstance(resp.data, dict) else resp.data
    return Response({'message': str(detail)}, status=resp.status_code, headers=_carry_headers(resp))


def _carry_headers(resp) -> dict:
    # keep WWW-Authenticate / Retry-After set by DRF
    return {k: v for k, v in resp.items() if k in ('WWW-Authenticate', 'Retry-After')}
