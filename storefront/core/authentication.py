"""
Admin authentication against the backend.

Admin tokens are issued by the backend on login. Incoming bearer tokens are
checked with the backend's verify endpoint and the outcome is cached
briefly so each admin request does not cost a round trip.
"""
from django.conf import settings
from django.core.cache import cache
from rest_framework import status
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.exceptions import AuthenticationFailed, APIException
from rest_framework.permissions import BasePermission
import logging

from .api_client import CatalogAPIClient, BackendAPIError
from .cache_utils import make_cache_key

logger = logging.getLogger(__name__)


class BackendUnavailable(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Catalog service is unavailable.'
    default_code = 'backend_unavailable'


class AdminUser:
    """Authenticated admin as reported by the backend"""

    is_authenticated = True

    def __init__(self, data=None):
        data = data or {}
        admin = data.get('admin') if isinstance(data.get('admin'), dict) else data
        self.id = admin.get('_id') or admin.get('id')
        self.email = admin.get('email')

    def __str__(self):
        return self.email or 'admin'


class BackendTokenAuthentication(BaseAuthentication):
    keyword = 'Bearer'

    def authenticate(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None
        if len(auth) != 2:
            raise AuthenticationFailed('Invalid token header.')

        try:
            token = auth[1].decode()
        except UnicodeError:
            raise AuthenticationFailed('Invalid token header.')

        data = self.verify_token(token)
        if data is None:
            # Stale tokens are treated as anonymous; admin views deny them through IsBackendAdmin
            return None
        return AdminUser(data), token

    def verify_token(self, token):
        """Return the backend's verify payload, or None when the token is rejected"""
        cache_key = make_cache_key('admin_token', token)
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            data = CatalogAPIClient(token=token).verify()
        except BackendAPIError as e:
            if e.status_code in (401, 403):
                logger.info(f"Backend rejected admin token: {e.message}")
                return None
            raise BackendUnavailable()

        if not isinstance(data, dict):
            data = {}
        cache.set(cache_key, data, getattr(settings, 'STOREFRONT_TOKEN_CACHE_TTL', 60))
        return data

    def authenticate_header(self, request):
        return self.keyword


class IsBackendAdmin(BasePermission):
    """Allow access only to requests carrying a verified admin token"""

    def has_permission(self, request, view):
        return bool(request.auth)
