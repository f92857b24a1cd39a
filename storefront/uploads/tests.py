"""
Test suite for the Uploads module
Tests: image validation, batch processing, preview lifecycle, admin image endpoints
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from storefront.core.test_utils import TestDataFactory, AuthenticatedAPIClient, MB
from storefront.uploads.image_upload import (
    validate_image, process_images, optimize_image, cleanup_previews, MAX_SIZE_BYTES
)
from storefront.uploads.previews import (
    PreviewRegistry, ReferenceOnlyPreviewRegistry, is_preview_reference
)


class FailingPreviewRegistry(PreviewRegistry):
    """Registry whose cache write fails once fail_after previews exist"""

    def __init__(self, fail_after):
        super().__init__()
        self.fail_after = fail_after
        self.created = []

    def create(self, file):
        if len(self.created) >= self.fail_after:
            raise OSError("cache unavailable")
        ref = super().create(file)
        self.created.append(ref)
        return ref


class ValidateImageTests(TestCase):
    """Test single file validation"""

    def test_allowed_types(self):
        for content_type in ('image/jpeg', 'image/jpg', 'image/png', 'image/webp'):
            image = TestDataFactory.create_image(content_type=content_type)
            self.assertIsNone(validate_image(image))

    def test_unsupported_type(self):
        image = TestDataFactory.create_image(name='anim.gif', content_type='image/gif')
        self.assertEqual(
            validate_image(image),
            'File type "image/gif" is not supported. Use JPG, PNG or WEBP.'
        )

    def test_too_large(self):
        image = TestDataFactory.create_image(name='big.jpg', content_type='image/jpeg', size=6 * MB)
        self.assertEqual(validate_image(image), 'File "big.jpg" is too large. Max size is 5MB.')

    def test_exactly_at_limit(self):
        image = TestDataFactory.create_image(content_type='image/png', size=MAX_SIZE_BYTES)
        self.assertIsNone(validate_image(image))

    def test_type_checked_before_size(self):
        image = TestDataFactory.create_image(name='big.bmp', content_type='image/bmp', size=6 * MB)
        self.assertIn('not supported', validate_image(image))


class ProcessImagesTests(TestCase):
    """Test batch validation"""

    def setUp(self):
        cache.clear()
        self.registry = PreviewRegistry()

    def test_batch_cap_rejects_whole_batch(self):
        files = TestDataFactory.create_images(5)
        result = process_images(files, current_total=8, max_allowed=10, previews=self.registry)
        self.assertEqual(result.errors, ['Maximum 10 images allowed in total.'])
        self.assertEqual(result.valid_files, [])
        self.assertEqual(result.previews, [])

    def test_batch_cap_skips_per_file_checks(self):
        files = [TestDataFactory.create_image(content_type='image/gif') for _ in range(3)]
        result = process_images(files, current_total=0, max_allowed=2, previews=self.registry)
        self.assertEqual(result.errors, ['Maximum 2 images allowed in total.'])

    def test_batch_exactly_at_cap(self):
        files = TestDataFactory.create_images(2)
        result = process_images(files, current_total=8, max_allowed=10, previews=self.registry)
        self.assertEqual(len(result.valid_files), 2)
        self.assertEqual(result.errors, [])

    def test_oversized_jpeg_rejected(self):
        big = TestDataFactory.create_image(name='big.jpg', content_type='image/jpeg', size=6 * MB)
        result = process_images([big], previews=self.registry)
        self.assertEqual(result.valid_files, [])
        self.assertEqual(result.errors, ['File "big.jpg" is too large. Max size is 5MB.'])

    def test_valid_png_accepted_with_one_preview(self):
        png = TestDataFactory.create_image(content_type='image/png', size=MB)
        result = process_images([png], previews=self.registry)
        self.assertEqual(result.valid_files, [png])
        self.assertEqual(len(result.previews), 1)
        self.assertTrue(is_preview_reference(result.previews[0]))
        self.assertEqual(result.errors, [])

    def test_single_file_argument(self):
        png = TestDataFactory.create_image(content_type='image/png')
        result = process_images(png, previews=self.registry)
        self.assertEqual(result.valid_files, [png])

    def test_mixed_batch_keeps_order(self):
        first = TestDataFactory.create_image(name='a.jpg', content_type='image/jpeg')
        bad = TestDataFactory.create_image(name='b.tiff', content_type='image/tiff')
        big = TestDataFactory.create_image(name='c.png', content_type='image/png', size=6 * MB)
        last = TestDataFactory.create_image(name='d.webp', content_type='image/webp')

        result = process_images([first, bad, big, last], previews=self.registry)
        self.assertEqual([f.name for f in result.valid_files], ['a.jpg', 'd.webp'])
        self.assertEqual(len(result.previews), 2)
        self.assertEqual(result.errors, [
            'File type "image/tiff" is not supported. Use JPG, PNG or WEBP.',
            'File "c.png" is too large. Max size is 5MB.',
        ])
        self.assertEqual(self.registry.resolve(result.previews[1])['name'], 'd.webp')

    def test_failure_mid_batch_releases_created_previews(self):
        registry = FailingPreviewRegistry(fail_after=1)
        files = TestDataFactory.create_images(3)
        with self.assertRaises(OSError):
            process_images(files, previews=registry)
        self.assertEqual(len(registry.created), 1)
        self.assertIsNone(registry.resolve(registry.created[0]))

    def test_reference_only_registry_stores_nothing(self):
        registry = ReferenceOnlyPreviewRegistry()
        result = process_images(TestDataFactory.create_images(2), previews=registry)
        self.assertEqual(len(result.valid_files), 2)
        self.assertTrue(all(is_preview_reference(ref) for ref in result.previews))
        self.assertIsNone(cache.get(PreviewRegistry()._cache_key(result.previews[0])))


class OptimizeImageTests(TestCase):
    """Test Cloudinary URL optimization"""

    def test_cloudinary_url(self):
        url = 'https://res.cloudinary.com/demo/image/upload/v123/router.jpg'
        self.assertEqual(
            optimize_image(url),
            'https://res.cloudinary.com/demo/image/upload/f_auto,q_auto/v123/router.jpg'
        )

    def test_already_optimized(self):
        url = 'https://res.cloudinary.com/demo/image/upload/f_auto,q_auto/v123/router.jpg'
        self.assertEqual(optimize_image(url), url)

    def test_other_values_unchanged(self):
        self.assertEqual(optimize_image('https://cdn.example.com/upload/a.jpg'), 'https://cdn.example.com/upload/a.jpg')
        self.assertIsNone(optimize_image(None))
        self.assertEqual(optimize_image(''), '')
        self.assertEqual(optimize_image(42), 42)


class PreviewLifecycleTests(TestCase):
    """Test preview references"""

    def setUp(self):
        cache.clear()
        self.registry = PreviewRegistry()

    def test_create_resolve_revoke(self):
        image = TestDataFactory.create_image(name='a.png', content_type='image/png', size=10)
        ref = self.registry.create(image)
        preview = self.registry.resolve(ref)
        self.assertEqual(preview['name'], 'a.png')
        self.assertEqual(preview['content_type'], 'image/png')
        self.assertEqual(len(preview['content']), 10)

        self.assertTrue(self.registry.revoke(ref))
        self.assertIsNone(self.registry.resolve(ref))
        self.assertFalse(self.registry.revoke(ref))

    def test_file_rewound_after_preview(self):
        image = TestDataFactory.create_image(size=10)
        self.registry.create(image)
        self.assertEqual(len(image.read()), 10)

    def test_staged_releases_on_exit(self):
        files = TestDataFactory.create_images(2)
        with self.registry.staged(files) as refs:
            self.assertEqual(len(refs), 2)
            self.assertIsNotNone(self.registry.resolve(refs[0]))
        self.assertIsNone(self.registry.resolve(refs[0]))
        self.assertIsNone(self.registry.resolve(refs[1]))

    def test_staged_releases_on_error(self):
        files = TestDataFactory.create_images(1)
        captured = []
        with self.assertRaises(RuntimeError):
            with self.registry.staged(files) as refs:
                captured.extend(refs)
                raise RuntimeError('form abandoned')
        self.assertIsNone(self.registry.resolve(captured[0]))

    def test_cleanup_skips_hosted_urls(self):
        refs = process_images(TestDataFactory.create_images(2), previews=self.registry).previews
        released = cleanup_previews(refs + ['https://res.cloudinary.com/demo/a.jpg'], previews=self.registry)
        self.assertEqual(released, 2)
        self.assertIsNone(self.registry.resolve(refs[0]))


class AdminImageEndpointTests(TestCase):
    """Test admin image validation and preview endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_admin()

    def test_requires_admin(self):
        self.client.logout()
        response = self.client.post('/api/v1/admin/images/validate/', {
            'images': TestDataFactory.create_images(1),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_validate_and_preview(self):
        response = self.client.post('/api/v1/admin/images/validate/', {
            'images': [
                TestDataFactory.create_image(name='ok.png', content_type='image/png', size=64),
                TestDataFactory.create_image(name='bad.gif', content_type='image/gif'),
            ],
            'current_total': '2',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['accepted']), 1)
        self.assertEqual(len(response.data['errors']), 1)

        ref = response.data['accepted'][0]['preview']
        token = ref[len('blob:'):]
        preview = self.client.get(f'/api/v1/admin/images/previews/{token}/')
        self.assertEqual(preview.status_code, status.HTTP_200_OK)
        self.assertEqual(preview['Content-Type'], 'image/png')
        self.assertEqual(len(preview.content), 64)

        release = self.client.post('/api/v1/admin/images/previews/release/', {'previews': [ref]}, format='json')
        self.assertEqual(release.data['released'], 1)
        gone = self.client.get(f'/api/v1/admin/images/previews/{token}/')
        self.assertEqual(gone.status_code, status.HTTP_404_NOT_FOUND)

    def test_batch_cap(self):
        response = self.client.post('/api/v1/admin/images/validate/', {
            'images': TestDataFactory.create_images(5),
            'current_total': '8',
            'max_allowed': '10',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['accepted'], [])
        self.assertEqual(response.data['errors'], ['Maximum 10 images allowed in total.'])

    def test_bad_counts(self):
        response = self.client.post('/api/v1/admin/images/validate/', {
            'images': TestDataFactory.create_images(1),
            'current_total': 'many',
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_no_images(self):
        response = self.client.post('/api/v1/admin/images/validate/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
