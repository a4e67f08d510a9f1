import logging

from django.http import JsonResponse

from .exceptions import server_error_payload

logger = logging.getLogger(__name__)


class ApiErrorMiddleware:
    """Answer uncaught errors on API paths with the JSON error shape.

    DRF views already go through ``api_exception_handler``; this catches
    what escapes plain Django views under the API prefixes.
    """
    API_PREFIXES = ('/api/', '/healthz')

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        path = request.path or ''
        if not any(path.startswith(p) for p in self.API_PREFIXES):
            return None
        logger.exception('Unhandled error on %s %s', request.method, path, exc_info=exception)
        return JsonResponse(server_error_payload(exception), status=500)
