from django.conf import settings
from django.http import HttpResponse
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
import logging

from storefront.core.authentication import IsBackendAdmin
from .image_upload import process_images, cleanup_previews
from .previews import preview_registry, PREVIEW_PREFIX

logger = logging.getLogger(__name__)


def _int_param(data, name, default):
    try:
        return int(data.get(name, default))
    except (TypeError, ValueError):
        return None


@api_view(['POST'])
@permission_classes([IsBackendAdmin])
def admin_images_validate(request):
    """
    Validate a selection of images and stage previews for the accepted ones.

    Form fields:
        images: one or more files
        current_total: images already attached or staged (default 0)
        max_allowed: total image cap (default STOREFRONT_MAX_PRODUCT_IMAGES)
    """
    current_total = _int_param(request.data, 'current_total', 0)
    max_allowed = _int_param(request.data, 'max_allowed', settings.STOREFRONT_MAX_PRODUCT_IMAGES)
    if current_total is None or current_total < 0 or max_allowed is None or max_allowed < 1:
        return Response(
            {'error': 'current_total and max_allowed must be non-negative integers.'},
            status=status.HTTP_400_BAD_REQUEST
        )

    files = request.FILES.getlist('images')
    if not files:
        return Response({'error': 'No images selected.'}, status=status.HTTP_400_BAD_REQUEST)

    result = process_images(files, current_total, max_allowed)
    accepted = [
        {
            'name': file.name,
            'content_type': file.content_type,
            'size': file.size,
            'preview': preview,
        }
        for file, preview in zip(result.valid_files, result.previews)
    ]
    return Response({'accepted': accepted, 'errors': result.errors})


@api_view(['GET'])
@permission_classes([IsBackendAdmin])
def admin_preview_detail(request, token):
    """Serve the bytes behind a staged preview reference"""
    preview = preview_registry.resolve(f'{PREVIEW_PREFIX}{token}')
    if preview is None:
        return Response({'error': 'Preview not found'}, status=status.HTTP_404_NOT_FOUND)
    return HttpResponse(preview['content'], content_type=preview['content_type'] or 'application/octet-stream')


@api_view(['POST'])
@permission_classes([IsBackendAdmin])
def admin_previews_release(request):
    """Release previews the admin deselected or abandoned"""
    previews = request.data.get('previews')
    if isinstance(previews, str):
        previews = request.data.getlist('previews') if hasattr(request.data, 'getlist') else [previews]
    if not isinstance(previews, list):
        return Response({'error': 'previews must be a list.'}, status=status.HTTP_400_BAD_REQUEST)

    released = cleanup_previews(previews)
    logger.debug(f"Released {released} of {len(previews)} previews")
    return Response({'released': released})
