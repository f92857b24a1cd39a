"""
Preview references for staged image uploads.

A preview reference ("blob:<uuid>") points at the bytes of a file the admin
has selected but not yet submitted. References live in the Django cache so
any worker can serve them, and they must be revoked once the image is
deselected or the form is abandoned. The cache timeout is only a backstop.
"""
from contextlib import contextmanager
from django.conf import settings
from django.core.cache import cache as default_cache
import logging
import uuid

logger = logging.getLogger(__name__)

PREVIEW_PREFIX = 'blob:'
PREVIEW_CACHE_PREFIX = 'image_preview'


def is_preview_reference(ref):
    return isinstance(ref, str) and ref.startswith(PREVIEW_PREFIX)


class PreviewRegistry:
    """Creates, resolves and revokes preview references"""

    def __init__(self, cache=None, timeout=None):
        self.cache = cache if cache is not None else default_cache
        if timeout is None:
            timeout = getattr(settings, 'STOREFRONT_PREVIEW_TIMEOUT', 1800)
        self.timeout = timeout

    def _cache_key(self, ref):
        token = ref[len(PREVIEW_PREFIX):] if is_preview_reference(ref) else ref
        return f'{PREVIEW_CACHE_PREFIX}:{token}'

    def create(self, file):
        """Store the file's bytes and return a new preview reference"""
        if hasattr(file, 'seek'):
            file.seek(0)
        content = file.read()
        if hasattr(file, 'seek'):
            file.seek(0)

        ref = f'{PREVIEW_PREFIX}{uuid.uuid4()}'
        self.cache.set(self._cache_key(ref), {
            'name': getattr(file, 'name', None),
            'content_type': getattr(file, 'content_type', None),
            'size': len(content),
            'content': content,
        }, self.timeout)
        logger.debug(f"Created preview {ref} for '{getattr(file, 'name', '')}'")
        return ref

    def resolve(self, ref):
        """Return the stored preview or None once revoked/expired"""
        if not is_preview_reference(ref):
            return None
        return self.cache.get(self._cache_key(ref))

    def revoke(self, ref):
        """Release a preview reference. Returns True if it was still live."""
        if not is_preview_reference(ref):
            return False
        key = self._cache_key(ref)
        existed = self.cache.get(key) is not None
        self.cache.delete(key)
        return existed

    @contextmanager
    def staged(self, files):
        """
        Create previews for the files and revoke them on exit.

        Usage:
            with registry.staged(files) as refs:
                render(refs)
        """
        refs = []
        try:
            for file in files:
                refs.append(self.create(file))
            yield refs
        finally:
            for ref in refs:
                self.revoke(ref)


class ReferenceOnlyPreviewRegistry(PreviewRegistry):
    """
    Issues preview references without storing any bytes.

    Used where the files are forwarded within the same request and the
    references are never served back.
    """

    def create(self, file):
        return f'{PREVIEW_PREFIX}{uuid.uuid4()}'

    def resolve(self, ref):
        return None

    def revoke(self, ref):
        return False


preview_registry = PreviewRegistry()
