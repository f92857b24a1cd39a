"""
Client for the backend catalog REST API.

Products, categories, banners and admin accounts are persisted by the
backend; the storefront reads and mutates them exclusively through this
client.
"""
from django.conf import settings
from typing import Dict, List, Optional, Tuple
import logging
import time

import requests

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-cache',
    'Pragma': 'no-cache',
    'Expires': '0',
}


class BackendAPIError(Exception):
    """Raised when the backend API fails or answers with an error status"""

    def __init__(self, message, status_code=502, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}

    def __str__(self):
        return f'{self.message} (status {self.status_code})'


def to_multipart_files(field_name: str, files) -> List[Tuple]:
    """Convert uploaded files into the (field, (name, fileobj, type)) tuples requests expects"""
    multipart = []
    for file in files or []:
        if hasattr(file, 'seek'):
            file.seek(0)
        multipart.append((field_name, (file.name, file, getattr(file, 'content_type', None))))
    return multipart


class CatalogAPIClient:
    """Thin wrapper around requests.Session for the catalog backend"""

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None):
        self.base_url = (base_url or settings.STOREFRONT_API_URL).rstrip('/')
        self.timeout = timeout or settings.STOREFRONT_API_TIMEOUT
        self.token = token
        self.session = requests.Session()
        self.session.headers.update(NO_CACHE_HEADERS)
        if token:
            self.session.headers.update({'Authorization': f'Bearer {token}'})

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def request(self, method: str, endpoint: str, params: Optional[Dict] = None,
                json: Optional[Dict] = None, data: Optional[Dict] = None, files=None):
        """Send a request and return the decoded JSON body"""
        url = self._url(endpoint)
        try:
            response = self.session.request(
                method, url,
                params=params, json=json, data=data, files=files,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.error(f"Backend timeout: {method} {url}")
            raise BackendAPIError('Catalog service timed out.', status_code=504)
        except requests.exceptions.RequestException as e:
            logger.error(f"Backend unreachable: {method} {url}: {str(e)}")
            raise BackendAPIError('Catalog service is unavailable.', status_code=503)

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            message = body.get('message') if isinstance(body, dict) else None
            logger.error(f"Backend error {response.status_code}: {method} {url}: {message or response.text[:200]}")
            raise BackendAPIError(
                message or f'Catalog service returned {response.status_code}.',
                status_code=response.status_code,
                payload=body if isinstance(body, dict) else {'data': body},
            )
        return body

    # Products
    def list_products(self, params: Optional[Dict] = None):
        return self.request('GET', '/products', params=params or {})

    def get_product(self, product_id):
        return self.request('GET', f'/products/{product_id}')

    def list_products_by_category(self, category_id):
        return self.request('GET', f'/products/category/{category_id}')

    def create_product(self, data: Dict, files=None):
        return self.request('POST', '/products', data=data, files=to_multipart_files('images', files))

    def update_product(self, product_id, data: Dict, files=None):
        return self.request('PUT', f'/products/{product_id}', data=data,
                            files=to_multipart_files('images', files))

    def delete_product(self, product_id):
        return self.request('DELETE', f'/products/{product_id}')

    # Categories
    def list_categories(self):
        return self.request('GET', '/categories')

    def get_category(self, category_id):
        return self.request('GET', f'/categories/{category_id}')

    def create_category(self, data: Dict, image=None):
        return self.request('POST', '/categories', data=data,
                            files=to_multipart_files('image', [image] if image else []))

    def update_category(self, category_id, data: Dict, image=None):
        return self.request('PUT', f'/categories/{category_id}', data=data,
                            files=to_multipart_files('image', [image] if image else []))

    def delete_category(self, category_id):
        return self.request('DELETE', f'/categories/{category_id}')

    # Banners
    def list_banners(self):
        # Timestamp keeps intermediaries from serving a stale list
        return self.request('GET', '/banners', params={'t': int(time.time() * 1000)})

    def create_banner(self, data: Dict, image=None):
        return self.request('POST', '/banners', data=data,
                            files=to_multipart_files('image', [image] if image else []))

    def update_banner(self, banner_id, data: Dict, image=None):
        return self.request('PUT', f'/banners/{banner_id}', data=data,
                            files=to_multipart_files('image', [image] if image else []))

    def delete_banner(self, banner_id):
        return self.request('DELETE', f'/banners/{banner_id}')

    # Admin
    def login(self, credentials: Dict):
        return self.request('POST', '/admin/login', json=credentials)

    def verify(self):
        return self.request('GET', '/admin/verify')


def get_client(request=None) -> CatalogAPIClient:
    """Build a client, forwarding the admin bearer token when the request carries one"""
    token = getattr(request, 'auth', None) if request is not None else None
    return CatalogAPIClient(token=token if isinstance(token, str) else None)
