"""
Image upload validation for the admin panel.

Handles validation, preview generation and error reporting for product,
category and banner images before they are forwarded to the backend.
"""
from dataclasses import dataclass, field
from typing import List, Optional
import logging

from .previews import preview_registry, is_preview_reference

logger = logging.getLogger(__name__)

MAX_SIZE_MB = 5
MAX_SIZE_BYTES = MAX_SIZE_MB * 1024 * 1024
ALLOWED_TYPES = ('image/jpeg', 'image/jpg', 'image/png', 'image/webp')
DEFAULT_MAX_IMAGES = 10

CLOUDINARY_HOST = 'cloudinary.com'
CLOUDINARY_TRANSFORM = 'f_auto,q_auto'


@dataclass
class ImageBatchResult:
    valid_files: list = field(default_factory=list)
    previews: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def validate_image(file) -> Optional[str]:
    """
    Validate a single file.

    Returns:
        Error message, or None if the file is acceptable
    """
    content_type = getattr(file, 'content_type', None)
    if content_type not in ALLOWED_TYPES:
        return f'File type "{content_type}" is not supported. Use JPG, PNG or WEBP.'
    if file.size > MAX_SIZE_BYTES:
        return f'File "{file.name}" is too large. Max size is {MAX_SIZE_MB}MB.'
    return None


def process_images(files, current_total=0, max_allowed=DEFAULT_MAX_IMAGES, previews=None):
    """
    Validate a batch of selected files.

    Args:
        files: A single uploaded file or a collection of them
        current_total: Number of images already staged/attached
        max_allowed: Maximum total images allowed
        previews: PreviewRegistry for the preview references
                  (defaults to the shared registry)

    Returns:
        ImageBatchResult with the accepted files (original order), one
        preview reference per accepted file, and an error per rejected file.
        If the batch would exceed max_allowed nothing is accepted and a
        single error is returned.
    """
    if hasattr(files, 'content_type'):
        files = [files]
    file_list = list(files)
    registry = previews if previews is not None else preview_registry
    result = ImageBatchResult()

    if current_total + len(file_list) > max_allowed:
        logger.info(
            f"Rejected image batch of {len(file_list)}: {current_total} already staged, max {max_allowed}"
        )
        result.errors.append(f'Maximum {max_allowed} images allowed in total.')
        return result

    try:
        for file in file_list:
            error = validate_image(file)
            if error:
                result.errors.append(error)
            else:
                result.previews.append(registry.create(file))
                result.valid_files.append(file)
    except Exception:
        # Previews created before the failure are never handed to a caller
        for ref in result.previews:
            registry.revoke(ref)
        raise

    if result.errors:
        logger.info(f"Rejected {len(result.errors)} of {len(file_list)} selected images")
    return result


def optimize_image(url):
    """Add auto-format/auto-quality to Cloudinary image URLs"""
    if not url or not isinstance(url, str) or CLOUDINARY_HOST not in url:
        return url
    if CLOUDINARY_TRANSFORM in url:
        return url
    return url.replace('/upload/', f'/upload/{CLOUDINARY_TRANSFORM}/', 1)


def cleanup_previews(preview_refs, previews=None):
    """
    Release preview references that are no longer displayed.

    Hosted image URLs are skipped. Returns the number of live references released.
    """
    registry = previews if previews is not None else preview_registry
    released = 0
    for ref in preview_refs:
        if is_preview_reference(ref) and registry.revoke(ref):
            released += 1
    return released
