import logging

from django.core.cache import cache
from django.db import connections
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def healthz(request):
    """Liveness check: one round trip to the database and one to the cache."""
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            db_ok = c.fetchone() == (1,)
        cache.set('healthz', 1, 5)
        cache_ok = cache.get('healthz') == 1
    except Exception as e:
        logger.warning('health check failed: %s', e)
        return JsonResponse({'message': 'unavailable', 'error': str(e)}, status=500)
    return JsonResponse({'message': 'ok', 'db': db_ok, 'cache': cache_ok})
