"""
XPRESS OPS Health Check Endpoints
==================================

Provides:
1. /health/ - Basic liveness check (for load balancers/Docker)
2. /health/ready/ - Readiness check (DB, Redis, tier policy)
"""

import time
import logging
from django.core.exceptions import ImproperlyConfigured
from django.db import connection, DatabaseError
from django.core.cache import cache
from django.http import JsonResponse
from django.views.decorators.http import require_GET
from django.views.decorators.csrf import csrf_exempt
from django.utils import timezone

logger = logging.getLogger('xpress.monitoring')


@csrf_exempt
@require_GET
def health_check(request):
    """
    Basic liveness probe.
    Returns 200 if the Django process is alive.
    """
    return JsonResponse({
        'status': 'ok',
        'service': 'xpress-ops',
        'timestamp': timezone.now().isoformat(),
    })


@csrf_exempt
@require_GET
def readiness_check(request):
    """
    Readiness probe - checks all critical dependencies.
    Returns 200 only if ALL dependencies are healthy, 503 otherwise.
    The cache is critical here: per-operator tier locks live in it.
    """
    from operators.services.tier_policy import get_tier_policy

    checks = {}
    all_healthy = True

    # 1. Database Check
    try:
        start = time.time()
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        checks['database'] = {
            'status': 'healthy',
            'response_time_ms': round((time.time() - start) * 1000, 2),
            'engine': connection.vendor,
        }
    except DatabaseError as e:
        checks['database'] = {
            'status': 'unhealthy',
            'error': str(e),
        }
        all_healthy = False
        logger.error(f"Health check - Database unhealthy: {e}")

    # 2. Cache Check
    try:
        start = time.time()
        cache_key = '_healthcheck_ping'
        cache.set(cache_key, 'pong', 10)
        result = cache.get(cache_key)
        if result != 'pong':
            raise ConnectionError("Cache read/write mismatch")
        checks['cache'] = {
            'status': 'healthy',
            'response_time_ms': round((time.time() - start) * 1000, 2),
        }
    except Exception as e:
        checks['cache'] = {
            'status': 'unhealthy',
            'error': str(e),
        }
        all_healthy = False
        logger.error(f"Health check - Cache unhealthy: {e}")

    # 3. Tier policy
    try:
        policy = get_tier_policy()
        policy.validate()
        checks['tier_policy'] = {
            'status': 'healthy',
            'version': policy.version,
        }
    except ImproperlyConfigured as e:
        checks['tier_policy'] = {
            'status': 'unhealthy',
            'error': str(e),
        }
        all_healthy = False
        logger.error(f"Health check - Tier policy invalid: {e}")

    status_code = 200 if all_healthy else 503
    overall_status = 'healthy' if all_healthy else 'unhealthy'

    return JsonResponse({
        'status': overall_status,
        'service': 'xpress-ops',
        'timestamp': timezone.now().isoformat(),
        'checks': checks,
    }, status=status_code)
