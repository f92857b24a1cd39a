"""
Test suite for the Catalog module
Tests: specification parsing, product/category/banner endpoints, admin mutations
"""
from unittest.mock import patch
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from storefront.core.api_client import BackendAPIError
from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient, MB
from storefront.uploads.previews import PreviewRegistry
from storefront.catalog.specifications import (
    parse_specifications, build_specifications_display, SpecificationItem
)


def as_dicts(sections):
    return [section.to_dict() for section in sections]


class SpecificationParserTests(TestCase):
    """Test parse_specifications"""

    def test_sections_split_by_headings(self):
        sections = parse_specifications("HEADING\nA: 1\nB: 2\nOTHER\nC: 3")
        self.assertEqual(as_dicts(sections), [
            {'heading': 'HEADING', 'items': [{'key': 'A', 'value': '1'}, {'key': 'B', 'value': '2'}]},
            {'heading': 'OTHER', 'items': [{'key': 'C', 'value': '3'}]},
        ])

    def test_consecutive_headings_keep_last(self):
        sections = parse_specifications("HEADING1\nHEADING2\nA: 1")
        self.assertEqual(as_dicts(sections), [
            {'heading': 'HEADING2', 'items': [{'key': 'A', 'value': '1'}]},
        ])

    def test_rows_without_heading_get_implicit_section(self):
        sections = parse_specifications("A: 1\nB: 2")
        self.assertEqual(len(sections), 1)
        self.assertIsNone(sections[0].heading)
        self.assertEqual(len(sections[0].items), 2)

    def test_split_on_first_colon_only(self):
        sections = parse_specifications("key: a:b\nTime: 12:30")
        self.assertEqual(sections[0].items, [
            SpecificationItem(key='key', value='a:b'),
            SpecificationItem(key='Time', value='12:30'),
        ])

    def test_text_without_colons_yields_nothing(self):
        for text in ['Plain description', 'Line one\nLine two\n\nLine three', 'HEADING\nANOTHER']:
            self.assertEqual(parse_specifications(text), [])

    def test_empty_and_whitespace_input(self):
        self.assertEqual(parse_specifications(''), [])
        self.assertEqual(parse_specifications('   \n\t\n  '), [])

    def test_non_string_input(self):
        self.assertEqual(parse_specifications(None), [])
        self.assertEqual(parse_specifications(42), [])

    def test_blank_key_or_value_discarded(self):
        sections = parse_specifications("Key:\n: value\n  :  \nPorts: 5")
        self.assertEqual(as_dicts(sections), [
            {'heading': None, 'items': [{'key': 'Ports', 'value': '5'}]},
        ])

    def test_key_without_value_is_not_a_heading(self):
        sections = parse_specifications("Hardware\nWireless:\nCPU: IPQ-4019")
        self.assertEqual(len(sections), 1)
        self.assertEqual(sections[0].heading, 'Hardware')
        self.assertEqual([item.key for item in sections[0].items], ['CPU'])

    def test_trailing_heading_without_rows_dropped(self):
        sections = parse_specifications("A: 1\nPower")
        self.assertEqual(as_dicts(sections), [
            {'heading': None, 'items': [{'key': 'A', 'value': '1'}]},
        ])

    def test_whitespace_and_crlf_trimmed(self):
        sections = parse_specifications("  Hardware  \r\n\r\n   CPU :  ARM  \r\n")
        self.assertEqual(as_dicts(sections), [
            {'heading': 'Hardware', 'items': [{'key': 'CPU', 'value': 'ARM'}]},
        ])

    def test_implicit_section_then_heading(self):
        sections = parse_specifications("Model: hAP ac2\nPower\nInput: 12-30 V DC\nPoE in: Passive")
        self.assertEqual(len(sections), 2)
        self.assertIsNone(sections[0].heading)
        self.assertEqual(sections[1].heading, 'Power')
        self.assertEqual(len(sections[1].items), 2)

    def test_each_call_builds_fresh_sections(self):
        text = "A: 1"
        first = parse_specifications(text)
        second = parse_specifications(text)
        self.assertEqual(first, second)
        self.assertIsNot(first[0], second[0])

    def test_byte_order_mark_trimmed(self):
        sections = parse_specifications("\ufeffHardware\nCPU: ARM\ufeff")
        self.assertEqual(as_dicts(sections), [
            {'heading': 'Hardware', 'items': [{'key': 'CPU', 'value': 'ARM'}]},
        ])
        self.assertEqual(parse_specifications("\ufeffA: 1")[0].items, [SpecificationItem(key='A', value='1')])


class SpecificationDisplayTests(TestCase):
    """Test build_specifications_display"""

    def test_structured_content(self):
        display = build_specifications_display("Hardware\nCPU: ARM")
        self.assertTrue(display['is_structured'])
        self.assertEqual(display['sections'][0]['heading'], 'Hardware')
        self.assertEqual(display['raw'], "Hardware\nCPU: ARM")

    def test_unstructured_content_falls_back_to_raw(self):
        text = "Just a paragraph of text\nwith two lines"
        display = build_specifications_display(text)
        self.assertFalse(display['is_structured'])
        self.assertEqual(display['sections'], [])
        self.assertEqual(display['raw'], text)

    def test_missing_content_falls_back(self):
        display = build_specifications_display(None)
        self.assertFalse(display['is_structured'])
        self.assertIsNone(display['raw'])


class SpecificationsParseEndpointTests(TestCase):
    """Test the specification preview endpoint"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_parse_structured(self):
        response = self.client.post(
            '/api/v1/specifications/parse/',
            {'content': "Wireless\nStandard: 802.11ac\nAntenna gain: 2 dBi"},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_structured'])
        self.assertEqual(response.data['sections'][0]['items'][1], {'key': 'Antenna gain', 'value': '2 dBi'})

    def test_parse_unstructured(self):
        response = self.client.post('/api/v1/specifications/parse/', {'content': 'No structure here'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_structured'])
        self.assertEqual(response.data['raw'], 'No structure here')

    def test_parse_without_content(self):
        response = self.client.post('/api/v1/specifications/parse/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_structured'])


@patch('storefront.catalog.views.get_client')
class StorefrontEndpointTests(TestCase):
    """Test public product, category and banner endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_product_detail_tabs(self, get_client):
        product = TestDataFactory.create_product(
            product_id='p1',
            specifications="Hardware\nCPU: ARM\nRAM: 128 MB",
            useCases='',
            images=['https://res.cloudinary.com/demo/image/upload/v1/router.jpg'],
        )
        get_client.return_value.get_product.return_value = product

        response = self.client.get('/api/v1/products/p1/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        get_client.return_value.get_product.assert_called_once_with('p1')

        tabs = {tab['id']: tab for tab in response.data['tabs']}
        self.assertEqual(list(tabs), ['description', 'specifications', 'applications'])
        self.assertTrue(tabs['specifications']['specifications']['is_structured'])
        self.assertEqual(tabs['specifications']['specifications']['sections'][0]['heading'], 'Hardware')
        self.assertTrue(tabs['applications']['is_empty'])
        self.assertFalse(tabs['description']['is_empty'])
        self.assertEqual(
            response.data['images'],
            ['https://res.cloudinary.com/demo/image/upload/f_auto,q_auto/v1/router.jpg']
        )

    def test_product_detail_unstructured_specifications(self, get_client):
        get_client.return_value.get_product.return_value = TestDataFactory.create_product(
            specifications='Ships with a 24V adapter'
        )
        response = self.client.get('/api/v1/products/p2/')
        spec_tab = response.data['tabs'][1]
        self.assertFalse(spec_tab['specifications']['is_structured'])
        self.assertEqual(spec_tab['specifications']['raw'], 'Ships with a 24V adapter')

    def test_product_detail_not_found(self, get_client):
        get_client.return_value.get_product.side_effect = BackendAPIError('Product not found', status_code=404)
        response = self.client.get('/api/v1/products/missing/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_product_detail_backend_down(self, get_client):
        get_client.return_value.get_product.side_effect = BackendAPIError(
            'Catalog service is unavailable.', status_code=503
        )
        response = self.client.get('/api/v1/products/p1/')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    def test_product_list_pagination(self, get_client):
        get_client.return_value.list_products.return_value = {
            'products': [TestDataFactory.create_product() for _ in range(3)],
            'page': 2,
            'pages': 4,
            'total': 39,
        }
        response = self.client.get('/api/v1/products/?page=2')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(response.data['pages'], 4)
        params = get_client.return_value.list_products.call_args[0][0]
        self.assertEqual(params['page'], '2')
        self.assertEqual(params['limit'], 12)

    def test_product_list_search_filter(self, get_client):
        get_client.return_value.list_products.return_value = [
            TestDataFactory.create_product(name='hAP ac2 Router', description='Home router'),
            TestDataFactory.create_product(name='CRS326 Switch', description='Cloud router switch'),
            TestDataFactory.create_product(name='SXT LTE', description='Outdoor LTE unit'),
        ]
        response = self.client.get('/api/v1/products/?search=ROUTER')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [p['name'] for p in response.data['products']],
            ['hAP ac2 Router', 'CRS326 Switch']
        )

    def test_product_list_search_matches_category_name(self, get_client):
        get_client.return_value.list_products.return_value = [
            TestDataFactory.create_product(name='cAP ax', description='Ceiling mount',
                                           category={'_id': 'c1', 'name': 'Access Points'}),
            TestDataFactory.create_product(name='CRS326', description='Rackmount',
                                           category={'_id': 'c2', 'name': 'Switches'}),
            TestDataFactory.create_product(name='RB5009', description='Rackmount', category='c3'),
        ]
        response = self.client.get('/api/v1/products/?search=access')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data['products']], ['cAP ax'])

    def test_category_products(self, get_client):
        get_client.return_value.list_products_by_category.return_value = [TestDataFactory.create_product()]
        response = self.client.get('/api/v1/categories/cat-1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        get_client.return_value.list_products_by_category.assert_called_once_with('cat-1')

    def test_category_list(self, get_client):
        get_client.return_value.list_categories.return_value = [
            TestDataFactory.create_category(name='Routers'),
            TestDataFactory.create_category(name='Switches'),
        ]
        response = self.client.get('/api/v1/categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

    def test_banner_list_active_in_order(self, get_client):
        get_client.return_value.list_banners.return_value = [
            TestDataFactory.create_banner(banner_id='b2', order=2),
            TestDataFactory.create_banner(banner_id='b0', order=0, is_active=False),
            TestDataFactory.create_banner(banner_id='b1', order=1),
        ]
        response = self.client.get('/api/v1/banners/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([b['_id'] for b in response.data], ['b1', 'b2'])


@patch('storefront.catalog.views.get_client')
class AdminProductTests(TestCase):
    """Test admin product create/update/delete"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_admin()
        self.form = {
            'name': 'hAP ac2',
            'price': '4999',
            'category': 'cat-1',
            'specifications': 'Hardware\nCPU: ARM',
            'keyFeatures': '["Dual band", "  ", "PoE out"]',
            'existingImages': '[]',
            'inStock': 'true',
        }

    def test_requires_admin(self, get_client):
        self.client.logout()
        response = self.client.post('/api/v1/admin/products/', self.form, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        get_client.return_value.create_product.assert_not_called()

    def test_create_product(self, get_client):
        get_client.return_value.create_product.return_value = {'_id': 'new'}
        self.form['images'] = [TestDataFactory.create_image(content_type='image/png', size=MB)]

        response = self.client.post('/api/v1/admin/products/', self.form, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['image_errors'], [])

        payload, files = get_client.return_value.create_product.call_args[0]
        self.assertEqual(payload['keyFeatures'], '["Dual band", "PoE out"]')
        self.assertEqual(payload['inStock'], 'true')
        self.assertEqual(len(files), 1)

    def test_create_product_validation_errors(self, get_client):
        self.form.update({'name': ' ', 'price': '-5'})
        response = self.client.post('/api/v1/admin/products/', self.form, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Product name is required.', response.data['name'])
        self.assertIn('Price must be a positive number.', response.data['price'])
        get_client.return_value.create_product.assert_not_called()

    def test_invalid_pdf_link_rejected(self, get_client):
        self.form['pdfLink'] = 'datasheet please'
        response = self.client.post('/api/v1/admin/products/', self.form, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['pdfLink'], ['Please enter a valid URL (e.g. https://example.com).'])
        get_client.return_value.create_product.assert_not_called()

    def test_hosted_pdf_link_accepted(self, get_client):
        get_client.return_value.create_product.return_value = {'_id': 'new'}
        self.form['pdfLink'] = 'https://res.cloudinary.com/demo/raw/upload/v1/hap-ac2.pdf'
        response = self.client.post('/api/v1/admin/products/', self.form, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        payload = get_client.return_value.create_product.call_args[0][0]
        self.assertEqual(payload['pdfLink'], 'https://res.cloudinary.com/demo/raw/upload/v1/hap-ac2.pdf')

    def test_mixed_batch_forwards_accepted_images(self, get_client):
        get_client.return_value.create_product.return_value = {'_id': 'new'}
        self.form['images'] = [
            TestDataFactory.create_image(name='ok.jpg', content_type='image/jpeg'),
            TestDataFactory.create_image(name='doc.gif', content_type='image/gif'),
        ]
        response = self.client.post('/api/v1/admin/products/', self.form, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['image_errors']), 1)
        files = get_client.return_value.create_product.call_args[0][1]
        self.assertEqual([f.name for f in files], ['ok.jpg'])

    def test_save_keeps_no_previews(self, get_client):
        get_client.return_value.create_product.return_value = {'_id': 'new'}
        self.form['images'] = TestDataFactory.create_images(2)
        with patch.object(PreviewRegistry, 'create') as create:
            response = self.client.post('/api/v1/admin/products/', self.form, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(get_client.return_value.create_product.call_args[0][1]), 2)
        create.assert_not_called()

    def test_existing_images_count_towards_cap(self, get_client):
        self.form['existingImages'] = '["https://cdn/a.jpg", "https://cdn/b.jpg", "https://cdn/c.jpg", ' \
                                      '"https://cdn/d.jpg", "https://cdn/e.jpg", "https://cdn/f.jpg", ' \
                                      '"https://cdn/g.jpg", "https://cdn/h.jpg"]'
        self.form['images'] = TestDataFactory.create_images(3)
        response = self.client.put('/api/v1/admin/products/p1/', self.form, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['image_errors'], ['Maximum 10 images allowed in total.'])
        get_client.return_value.update_product.assert_not_called()

    def test_update_product(self, get_client):
        get_client.return_value.update_product.return_value = {'_id': 'p1'}
        response = self.client.put('/api/v1/admin/products/p1/', self.form, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(get_client.return_value.update_product.call_args[0][0], 'p1')

    def test_delete_product(self, get_client):
        response = self.client.delete('/api/v1/admin/products/p1/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        get_client.return_value.delete_product.assert_called_once_with('p1')

    def test_backend_failure_on_save(self, get_client):
        get_client.return_value.create_product.side_effect = BackendAPIError('Boom', status_code=500)
        response = self.client.post('/api/v1/admin/products/', self.form, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)


@patch('storefront.catalog.views.get_client')
class AdminDashboardTests(TestCase):
    """Test the admin dashboard summary"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_admin()

    def test_requires_admin(self, get_client):
        self.client.logout()
        response = self.client.get('/api/v1/admin/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        get_client.return_value.list_products.assert_not_called()

    def test_stats_and_recent_products(self, get_client):
        products = [
            TestDataFactory.create_product(product_id=f'p{day}', createdAt=f'2024-03-0{day}T10:00:00.000Z')
            for day in (3, 1, 6, 2, 5, 4)
        ]
        products.append(TestDataFactory.create_product(product_id='undated'))
        products.append(TestDataFactory.create_product(product_id='naive', createdAt='2024-03-07T09:00:00'))
        get_client.return_value.list_products.return_value = {'products': products, 'total': 42}
        get_client.return_value.list_categories.return_value = [TestDataFactory.create_category() for _ in range(3)]
        get_client.return_value.list_banners.return_value = [TestDataFactory.create_banner()]

        response = self.client.get('/api/v1/admin/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stats'], {'products': 42, 'categories': 3, 'banners': 1})
        self.assertEqual(
            [p['_id'] for p in response.data['recent_products']],
            ['naive', 'p6', 'p5', 'p4', 'p3']
        )

    def test_product_count_without_total(self, get_client):
        get_client.return_value.list_products.return_value = [TestDataFactory.create_product() for _ in range(2)]
        get_client.return_value.list_categories.return_value = []
        get_client.return_value.list_banners.return_value = []

        response = self.client.get('/api/v1/admin/dashboard/')
        self.assertEqual(response.data['stats'], {'products': 2, 'categories': 0, 'banners': 0})

    def test_backend_failure(self, get_client):
        get_client.return_value.list_categories.side_effect = BackendAPIError(
            'Catalog service is unavailable.', status_code=503
        )
        response = self.client.get('/api/v1/admin/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)


@patch('storefront.catalog.views.get_client')
class AdminCategoryAndBannerTests(TestCase):
    """Test admin category and banner mutations"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_admin()

    def test_create_category_requires_name(self, get_client):
        response = self.client.post('/api/v1/admin/categories/', {'description': 'x'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Category name is required.', response.data['name'])

    def test_create_category_rejects_bad_image(self, get_client):
        response = self.client.post('/api/v1/admin/categories/', {
            'name': 'Routers',
            'image': TestDataFactory.create_image(name='huge.jpg', content_type='image/jpeg', size=6 * MB),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['image'], 'File "huge.jpg" is too large. Max size is 5MB.')
        get_client.return_value.create_category.assert_not_called()

    def test_create_category(self, get_client):
        get_client.return_value.create_category.return_value = {'_id': 'c1', 'name': 'Routers'}
        response = self.client.post('/api/v1/admin/categories/', {
            'name': 'Routers',
            'image': TestDataFactory.create_image(content_type='image/webp'),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        data, image = get_client.return_value.create_category.call_args[0]
        self.assertEqual(data['name'], 'Routers')
        self.assertIsNotNone(image)

    def test_delete_non_empty_category_refused(self, get_client):
        get_client.return_value.get_category.return_value = {'_id': 'c1', 'name': 'Routers'}
        get_client.return_value.list_products_by_category.return_value = [
            TestDataFactory.create_product(), TestDataFactory.create_product()
        ]
        response = self.client.delete('/api/v1/admin/categories/c1/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['error'], 'Category "Routers" is not empty (2 products).')
        get_client.return_value.delete_category.assert_not_called()

    def test_delete_empty_category(self, get_client):
        get_client.return_value.get_category.return_value = {'_id': 'c1', 'name': 'Routers'}
        get_client.return_value.list_products_by_category.return_value = {'products': []}
        response = self.client.delete('/api/v1/admin/categories/c1/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        get_client.return_value.delete_category.assert_called_once_with('c1')

    def test_create_banner_requires_image(self, get_client):
        response = self.client.post('/api/v1/admin/banners/', {'title': 'Sale'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['image'], 'Image is required for new banners')

    def test_create_banner(self, get_client):
        get_client.return_value.create_banner.return_value = {'_id': 'b1'}
        response = self.client.post('/api/v1/admin/banners/', {
            'title': 'Sale',
            'order': '3',
            'isActive': 'true',
            'image': TestDataFactory.create_image(content_type='image/jpeg'),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        payload = get_client.return_value.create_banner.call_args[0][0]
        self.assertEqual(payload['order'], '3')
        self.assertEqual(payload['isActive'], 'true')

    def test_update_banner_without_new_image(self, get_client):
        get_client.return_value.update_banner.return_value = {'_id': 'b1'}
        response = self.client.put('/api/v1/admin/banners/b1/', {'title': 'Sale', 'isActive': 'false'},
                                   format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        banner_id, payload, image = get_client.return_value.update_banner.call_args[0]
        self.assertEqual(banner_id, 'b1')
        self.assertEqual(payload['isActive'], 'false')
        self.assertIsNone(image)

    def test_delete_banner(self, get_client):
        response = self.client.delete('/api/v1/admin/banners/b1/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        get_client.return_value.delete_banner.assert_called_once_with('b1')
