"""
Test utilities and factories for creating test data
"""
from django.conf import settings
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient
import random
import string

from .cache_utils import make_cache_key

MB = 1024 * 1024


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_image(name=None, content_type='image/png', size=1024):
        """Create an in-memory uploaded file of the given type and size"""
        if not name:
            extension = content_type.split('/')[-1]
            name = f'image_{TestDataFactory.random_string(6)}.{extension}'
        return SimpleUploadedFile(name, b'\x00' * size, content_type=content_type)

    @staticmethod
    def create_images(count, content_type='image/jpeg', size=1024):
        return [TestDataFactory.create_image(content_type=content_type, size=size) for _ in range(count)]

    @staticmethod
    def create_product(product_id=None, name=None, specifications='', **extra):
        """Create a product record shaped like the backend's"""
        product = {
            '_id': product_id or TestDataFactory.random_string(24).lower(),
            'name': name or f'Router {TestDataFactory.random_string(4)}',
            'price': 4999,
            'category': 'cat-1',
            'description': 'Dual-band wireless router',
            'detailedDescription': 'Dual-band wireless router for small offices.',
            'specifications': specifications,
            'useCases': 'Branch offices',
            'images': [],
            'inStock': True,
            'keyFeatures': [],
        }
        product.update(extra)
        return product

    @staticmethod
    def create_category(category_id=None, name=None, **extra):
        category = {
            '_id': category_id or TestDataFactory.random_string(24).lower(),
            'name': name or f'Category_{TestDataFactory.random_string(6)}',
            'description': 'Test category',
            'image': None,
        }
        category.update(extra)
        return category

    @staticmethod
    def create_banner(banner_id=None, order=0, is_active=True, **extra):
        banner = {
            '_id': banner_id or TestDataFactory.random_string(24).lower(),
            'title': f'Banner {TestDataFactory.random_string(4)}',
            'link': '/products',
            'order': order,
            'isActive': is_active,
            'image': 'https://cdn.example.com/banner.jpg',
        }
        banner.update(extra)
        return banner


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_admin(self, token='test-admin-token', email='admin@nexlyn.test'):
        """Authenticate the client with an admin token the backend would accept"""
        cache.set(
            make_cache_key('admin_token', token),
            {'valid': True, 'admin': {'email': email}},
            getattr(settings, 'STOREFRONT_TOKEN_CACHE_TTL', 60)
        )
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
