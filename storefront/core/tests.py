"""
Test suite for the Core module
Tests: form validators, backend API client, admin authentication, contact and login endpoints
"""
from unittest.mock import patch, MagicMock
from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status
import requests

from storefront.core.api_client import CatalogAPIClient, BackendAPIError
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from storefront.core.validation import (
    validate_required, validate_email, validate_price, validate_url,
    validate_phone, validate_length, run_validators, collect_errors
)


def backend_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.text = ''
    if body is None:
        response.json.side_effect = ValueError('No JSON')
    else:
        response.json.return_value = body
    return response


class ValidationTests(TestCase):
    """Test form validation rules"""

    def test_validate_required(self):
        self.assertEqual(validate_required(None), 'This field is required.')
        self.assertEqual(validate_required('   ', 'Subject'), 'Subject is required.')
        self.assertIsNone(validate_required('hello'))
        self.assertIsNone(validate_required(0))

    def test_validate_email(self):
        self.assertEqual(validate_email(''), 'Email is required.')
        self.assertEqual(validate_email('not-an-email'), 'Please enter a valid email address.')
        self.assertEqual(validate_email('a b@c.com'), 'Please enter a valid email address.')
        self.assertIsNone(validate_email('sales@nexlyn.com'))

    def test_validate_price(self):
        for bad in ('abc', '', None, 0, '-1', 'nan'):
            self.assertEqual(validate_price(bad), 'Price must be a positive number.')
        self.assertIsNone(validate_price('4999.50'))
        self.assertIsNone(validate_price(12))

    def test_validate_url(self):
        self.assertIsNone(validate_url(''))
        self.assertIsNone(validate_url('https://example.com'))
        self.assertIsNone(validate_url('example.com/docs/guide.pdf'))
        self.assertEqual(validate_url('not a url'), 'Please enter a valid URL (e.g. https://example.com).')

    def test_validate_phone(self):
        self.assertIsNone(validate_phone(''))
        self.assertIsNone(validate_phone('98765 43210'))
        self.assertIsNone(validate_phone('+91 9876543210'))
        self.assertEqual(validate_phone('12345'), 'Please enter a valid 10-digit phone number.')
        self.assertEqual(validate_phone('5876543210'), 'Please enter a valid 10-digit phone number.')

    def test_validate_length(self):
        self.assertIsNone(validate_length('', 3, 50, 'Name'))
        self.assertEqual(validate_length(' ab ', 3, 50, 'Name'), 'Name must be at least 3 characters long.')
        self.assertEqual(validate_length('x' * 51, 3, 50, 'Name'), 'Name cannot exceed 50 characters.')
        self.assertIsNone(validate_length('Asha', 3, 50, 'Name'))

    def test_run_validators_returns_first_error(self):
        error = run_validators('', [
            lambda v: validate_required(v, 'Email'),
            validate_email,
        ])
        self.assertEqual(error, 'Email is required.')
        self.assertIsNone(run_validators('a@b.co', [validate_email]))

    def test_collect_errors(self):
        self.assertEqual(collect_errors({'name': None, 'email': 'Email is required.'}),
                         {'email': 'Email is required.'})


@override_settings(STOREFRONT_API_URL='http://backend.test/api/', STOREFRONT_API_TIMEOUT=5)
class CatalogAPIClientTests(TestCase):
    """Test the backend REST client"""

    def test_default_headers(self):
        client = CatalogAPIClient(token='abc')
        self.assertEqual(client.base_url, 'http://backend.test/api')
        self.assertEqual(client.session.headers['Cache-Control'], 'no-cache')
        self.assertEqual(client.session.headers['Authorization'], 'Bearer abc')
        self.assertNotIn('Authorization', CatalogAPIClient().session.headers)

    def test_get_product(self):
        client = CatalogAPIClient()
        with patch.object(client.session, 'request', return_value=backend_response(200, {'_id': '1'})) as request:
            self.assertEqual(client.get_product('1'), {'_id': '1'})
        method, url = request.call_args[0]
        self.assertEqual((method, url), ('GET', 'http://backend.test/api/products/1'))
        self.assertEqual(request.call_args[1]['timeout'], 5)

    def test_list_banners_busts_cache(self):
        client = CatalogAPIClient()
        with patch.object(client.session, 'request', return_value=backend_response(200, [])) as request:
            client.list_banners()
        self.assertIn('t', request.call_args[1]['params'])

    def test_error_keeps_backend_message(self):
        client = CatalogAPIClient()
        response = backend_response(404, {'message': 'Product not found'})
        with patch.object(client.session, 'request', return_value=response):
            with self.assertRaises(BackendAPIError) as ctx:
                client.get_product('missing')
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.message, 'Product not found')

    def test_network_failure(self):
        client = CatalogAPIClient()
        with patch.object(client.session, 'request', side_effect=requests.exceptions.ConnectionError()):
            with self.assertRaises(BackendAPIError) as ctx:
                client.list_categories()
        self.assertEqual(ctx.exception.status_code, 503)

    def test_timeout(self):
        client = CatalogAPIClient()
        with patch.object(client.session, 'request', side_effect=requests.exceptions.Timeout()):
            with self.assertRaises(BackendAPIError) as ctx:
                client.list_products()
        self.assertEqual(ctx.exception.status_code, 504)

    def test_multipart_upload(self):
        client = CatalogAPIClient()
        image = TestDataFactory.create_image(name='a.png', content_type='image/png')
        with patch.object(client.session, 'request', return_value=backend_response(201, {'_id': 'n'})) as request:
            client.create_product({'name': 'hAP'}, [image])
        files = request.call_args[1]['files']
        self.assertEqual(files[0][0], 'images')
        self.assertEqual(files[0][1][0], 'a.png')
        self.assertEqual(files[0][1][2], 'image/png')


class AdminAuthenticationTests(TestCase):
    """Test admin token verification"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_verify_without_token(self):
        response = self.client.get('/api/v1/admin/verify/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_verify_with_cached_token(self):
        self.client.authenticate_admin(email='owner@nexlyn.test')
        response = self.client.get('/api/v1/admin/verify/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['email'], 'owner@nexlyn.test')

    @patch('storefront.core.authentication.CatalogAPIClient')
    def test_token_checked_with_backend_once(self, client_class):
        client_class.return_value.verify.return_value = {'admin': {'email': 'a@nexlyn.test'}}
        self.client.credentials(HTTP_AUTHORIZATION='Bearer fresh-token')

        self.assertEqual(self.client.get('/api/v1/admin/verify/').status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get('/api/v1/admin/verify/').status_code, status.HTTP_200_OK)
        client_class.assert_called_once_with(token='fresh-token')

    @patch('storefront.core.authentication.CatalogAPIClient')
    def test_rejected_token(self, client_class):
        client_class.return_value.verify.side_effect = BackendAPIError('Token expired', status_code=401)
        self.client.credentials(HTTP_AUTHORIZATION='Bearer stale-token')
        response = self.client.get('/api/v1/admin/verify/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @patch('storefront.catalog.views.get_client')
    @patch('storefront.core.authentication.CatalogAPIClient')
    def test_stale_token_browses_storefront_anonymously(self, client_class, get_client):
        client_class.return_value.verify.side_effect = BackendAPIError('Token expired', status_code=401)
        get_client.return_value.list_products.return_value = {'products': [], 'pages': 1}
        self.client.credentials(HTTP_AUTHORIZATION='Bearer expired-token')

        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(get_client.call_args[0][0].auth)

    @patch('storefront.core.views.CatalogAPIClient')
    @patch('storefront.core.authentication.CatalogAPIClient')
    def test_stale_token_can_log_in_again(self, client_class, login_client_class):
        client_class.return_value.verify.side_effect = BackendAPIError('Token expired', status_code=403)
        login_client_class.return_value.login.return_value = {'token': 'new-token'}
        self.client.credentials(HTTP_AUTHORIZATION='Bearer expired-token')

        response = self.client.post('/api/v1/admin/login/', {
            'email': 'admin@nexlyn.com', 'password': 'secret'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['token'], 'new-token')

    @patch('storefront.core.authentication.CatalogAPIClient')
    def test_backend_unavailable(self, client_class):
        client_class.return_value.verify.side_effect = BackendAPIError('down', status_code=503)
        self.client.credentials(HTTP_AUTHORIZATION='Bearer some-token')
        response = self.client.get('/api/v1/admin/verify/')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)


class ContactTests(TestCase):
    """Test contact form submission"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.form = {
            'name': 'Asha Rao',
            'email': 'asha@example.com',
            'subject': 'Bulk order',
            'message': 'Need a quote for 40 access points.',
        }

    def test_valid_submission(self):
        response = self.client.post('/api/v1/contact/', self.form, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_all_fields_missing(self):
        response = self.client.post('/api/v1/contact/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Name is required.', response.data['name'])
        self.assertIn('Email is required.', response.data['email'])
        self.assertIn('Subject is required.', response.data['subject'])
        self.assertIn('Message is required.', response.data['message'])

    def test_length_limits(self):
        self.form.update({'name': 'Al', 'message': 'Too short'})
        response = self.client.post('/api/v1/contact/', self.form, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Name must be at least 3 characters long.', response.data['name'])
        self.assertIn('Message must be at least 10 characters long.', response.data['message'])
        self.assertNotIn('email', response.data)


@patch('storefront.core.views.CatalogAPIClient')
class AdminLoginTests(TestCase):
    """Test admin login"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_login_returns_backend_token(self, client_class):
        client_class.return_value.login.return_value = {'token': 'jwt-token'}
        response = self.client.post('/api/v1/admin/login/', {
            'email': 'admin@nexlyn.com', 'password': 'secret'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['token'], 'jwt-token')
        client_class.return_value.login.assert_called_once_with({
            'email': 'admin@nexlyn.com', 'password': 'secret'
        })

    def test_login_validates_locally(self, client_class):
        response = self.client.post('/api/v1/admin/login/', {'email': 'bad', 'password': ''}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Please enter a valid email address.', response.data['email'])
        self.assertIn('Password is required.', response.data['password'])
        client_class.return_value.login.assert_not_called()

    def test_login_rejected(self, client_class):
        client_class.return_value.login.side_effect = BackendAPIError(
            'Invalid credentials', status_code=401, payload={'message': 'Invalid credentials'}
        )
        response = self.client.post('/api/v1/admin/login/', {
            'email': 'admin@nexlyn.com', 'password': 'wrong'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'Invalid credentials')
