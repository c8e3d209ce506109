from django.db import connection
from django.db.utils import OperationalError
from django.http import JsonResponse


def health_check(request):
    """Liveness probe with a database round-trip."""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except OperationalError:
        return JsonResponse({'status': 'error', 'database': 'unavailable'}, status=503)
    return JsonResponse({'status': 'ok', 'database': 'ok'})


def error_404(request, exception):
    """Custom 404 handler."""
    return JsonResponse({
        'error': 'Not found',
        'status': 404
    }, status=404)


def error_500(request):
    """Custom 500 handler."""
    return JsonResponse({
        'error': 'Internal server error',
        'status': 500
    }, status=500)
