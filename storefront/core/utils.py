"""Request helpers shared by the storefront views"""
from rest_framework import status
from rest_framework.response import Response


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def backend_error_response(error, fallback_message=None):
    """Translate a BackendAPIError into a client-facing response"""
    status_code = error.status_code
    if not isinstance(status_code, int) or status_code < 400:
        status_code = status.HTTP_502_BAD_GATEWAY
    elif status_code >= 500 and status_code not in (503, 504):
        status_code = status.HTTP_502_BAD_GATEWAY
    return Response(
        {'error': error.message or fallback_message or 'Catalog service error.'},
        status=status_code
    )
