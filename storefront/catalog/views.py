from datetime import datetime, timezone as dt_timezone
from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
import logging

from storefront.core.api_client import get_client, BackendAPIError
from storefront.core.authentication import IsBackendAdmin
from storefront.core.utils import backend_error_response
from storefront.uploads.image_upload import (
    process_images, validate_image, optimize_image
)
from storefront.uploads.previews import ReferenceOnlyPreviewRegistry
from .serializers import (
    SpecificationPreviewSerializer, ProductFormSerializer,
    CategoryFormSerializer, BannerFormSerializer
)
from .specifications import build_specifications_display

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12
RECENT_PRODUCTS = 5

PRODUCT_TABS = (
    ('description', 'Detailed Description', 'detailedDescription'),
    ('specifications', 'Specifications', 'specifications'),
    ('applications', 'Applications', 'useCases'),
)


def optimize_record_images(record):
    """Return a copy of a product/category/banner with optimized image URLs"""
    if not isinstance(record, dict):
        return record
    record = dict(record)
    if isinstance(record.get('images'), list):
        record['images'] = [optimize_image(url) for url in record['images']]
    if 'image' in record:
        record['image'] = optimize_image(record['image'])
    return record


def extract_products(payload):
    """Backend answers either a bare list or {'products': [...], 'pages': n, ...}"""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        products = payload.get('products')
        if isinstance(products, list):
            return products
    return []


def matches_search(product, term):
    """Case-insensitive match on product name, category name or description"""
    term = term.lower()
    category = product.get('category')
    values = [product.get('name'), product.get('description')]
    if isinstance(category, dict):
        values.append(category.get('name'))
    return any(isinstance(value, str) and term in value.lower() for value in values)


def _created_at(record):
    value = record.get('createdAt') if isinstance(record, dict) else None
    parsed = None
    if isinstance(value, str):
        try:
            parsed = parse_datetime(value)
        except ValueError:
            parsed = None
    if parsed is None:
        return datetime.min.replace(tzinfo=dt_timezone.utc)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def build_product_tabs(product):
    """
    Build the tabbed content block of the product detail page.

    The specifications tab carries the parsed sections; the other tabs carry
    their text unchanged.
    """
    tabs = []
    for tab_id, label, field in PRODUCT_TABS:
        content = product.get(field)
        tab = {
            'id': tab_id,
            'label': label,
            'content': content,
            'is_empty': not content,
        }
        if tab_id == 'specifications':
            tab['specifications'] = build_specifications_display(content) if content else None
        tabs.append(tab)
    return tabs


# Storefront views
@api_view(['GET'])
@permission_classes([AllowAny])
def product_list(request):
    """List products with pagination, optional category and search filtering"""
    params = {
        'page': request.query_params.get('page', 1),
        'limit': request.query_params.get('limit', DEFAULT_PAGE_SIZE),
    }
    category = request.query_params.get('category')
    if category:
        params['category'] = category
    search = (request.query_params.get('search') or '').strip()
    if search:
        params['search'] = search

    try:
        payload = get_client(request).list_products(params)
    except BackendAPIError as e:
        return backend_error_response(e)

    products = [optimize_record_images(p) for p in extract_products(payload)]
    if search:
        products = [p for p in products if matches_search(p, search)]

    meta = payload if isinstance(payload, dict) else {}
    return Response({
        'products': products,
        'count': len(products),
        'page': meta.get('page', params['page']),
        'pages': meta.get('pages') or 1,
        'total': meta.get('total', len(products)),
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def product_detail(request, pk):
    """Get a product with its description/specifications/applications tabs"""
    try:
        product = get_client(request).get_product(pk)
    except BackendAPIError as e:
        if e.status_code == 404:
            return Response({'error': 'Product not found'}, status=status.HTTP_404_NOT_FOUND)
        return backend_error_response(e)

    if not isinstance(product, dict):
        logger.error(f"Unexpected product payload for {pk}: {type(product).__name__}")
        return Response({'error': 'Catalog service error.'}, status=status.HTTP_502_BAD_GATEWAY)

    product = optimize_record_images(product)
    product['tabs'] = build_product_tabs(product)
    return Response(product)


@api_view(['GET'])
@permission_classes([AllowAny])
def category_list(request):
    try:
        categories = get_client(request).list_categories()
    except BackendAPIError as e:
        return backend_error_response(e)
    return Response([optimize_record_images(c) for c in categories or []])


@api_view(['GET'])
@permission_classes([AllowAny])
def category_detail(request, pk):
    try:
        category = get_client(request).get_category(pk)
    except BackendAPIError as e:
        if e.status_code == 404:
            return Response({'error': 'Category not found'}, status=status.HTTP_404_NOT_FOUND)
        return backend_error_response(e)
    return Response(optimize_record_images(category))


@api_view(['GET'])
@permission_classes([AllowAny])
def category_products(request, pk):
    """List the products of one category"""
    try:
        payload = get_client(request).list_products_by_category(pk)
    except BackendAPIError as e:
        return backend_error_response(e)
    products = [optimize_record_images(p) for p in extract_products(payload)]
    return Response({'products': products, 'count': len(products)})


@api_view(['GET'])
@permission_classes([AllowAny])
def banner_list(request):
    """Active banners in display order"""
    try:
        banners = get_client(request).list_banners() or []
    except BackendAPIError as e:
        return backend_error_response(e)

    active = [b for b in banners if isinstance(b, dict) and b.get('isActive', True)]
    active.sort(key=lambda b: b.get('order') or 0)
    return Response([optimize_record_images(b) for b in active])


@api_view(['POST'])
@permission_classes([AllowAny])
def specifications_parse(request):
    """Live preview of the specification textarea"""
    serializer = SpecificationPreviewSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    return Response(build_specifications_display(serializer.validated_data.get('content')))


# Admin views
@api_view(['GET'])
@permission_classes([IsBackendAdmin])
def admin_dashboard(request):
    """Catalog totals and the five most recently created products"""
    client = get_client(request)
    try:
        payload = client.list_products()
        categories = client.list_categories() or []
        banners = client.list_banners() or []
    except BackendAPIError as e:
        return backend_error_response(e, 'Error loading dashboard')

    products = extract_products(payload)
    total = payload.get('total') if isinstance(payload, dict) else None
    recent = sorted(products, key=_created_at, reverse=True)[:RECENT_PRODUCTS]

    return Response({
        'stats': {
            'products': total or len(products),
            'categories': len(categories),
            'banners': len(banners),
        },
        'recent_products': [optimize_record_images(p) for p in recent],
    })


def _save_product(request, pk=None):
    serializer = ProductFormSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    existing_images = serializer.validated_data['existingImages']
    files = request.FILES.getlist('images')
    max_images = settings.STOREFRONT_MAX_PRODUCT_IMAGES
    # Submitted files are forwarded in this request and never displayed again
    result = process_images(files, len(existing_images), max_images,
                            previews=ReferenceOnlyPreviewRegistry())

    if files and not result.valid_files and len(existing_images) + len(files) > max_images:
        return Response({'image_errors': result.errors}, status=status.HTTP_400_BAD_REQUEST)

    client = get_client(request)
    payload = serializer.to_backend_payload()
    try:
        if pk is None:
            product = client.create_product(payload, result.valid_files)
        else:
            product = client.update_product(pk, payload, result.valid_files)
    except BackendAPIError as e:
        return backend_error_response(e, 'Error saving product')

    logger.info(f"Product {'created' if pk is None else f'{pk} updated'} with {len(result.valid_files)} new images")
    return Response({
        'product': product,
        'image_errors': result.errors,
    }, status=status.HTTP_201_CREATED if pk is None else status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([IsBackendAdmin])
def admin_product_create(request):
    """Validate and publish a new product"""
    return _save_product(request)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsBackendAdmin])
def admin_product_detail(request, pk):
    """Update or delete a product"""
    if request.method == 'PUT':
        return _save_product(request, pk)

    try:
        get_client(request).delete_product(pk)
    except BackendAPIError as e:
        return backend_error_response(e, 'Error deleting product')
    logger.info(f"Product {pk} deleted")
    return Response(status=status.HTTP_204_NO_CONTENT)


def _single_image(request, required=False):
    """Return (image, error_response) for a single-image form"""
    image = request.FILES.get('image')
    if image is None:
        if required:
            return None, Response({'image': 'Image is required for new banners'}, status=status.HTTP_400_BAD_REQUEST)
        return None, None
    error = validate_image(image)
    if error:
        return None, Response({'image': error}, status=status.HTTP_400_BAD_REQUEST)
    return image, None


@api_view(['POST'])
@permission_classes([IsBackendAdmin])
def admin_category_create(request):
    serializer = CategoryFormSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    image, error_response = _single_image(request)
    if error_response:
        return error_response

    try:
        category = get_client(request).create_category(dict(serializer.validated_data), image)
    except BackendAPIError as e:
        return backend_error_response(e, 'Error saving category')
    return Response(category, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsBackendAdmin])
def admin_category_detail(request, pk):
    """Update a category, or delete it when it holds no products"""
    client = get_client(request)

    if request.method == 'PUT':
        serializer = CategoryFormSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        image, error_response = _single_image(request)
        if error_response:
            return error_response
        try:
            category = client.update_category(pk, dict(serializer.validated_data), image)
        except BackendAPIError as e:
            return backend_error_response(e, 'Error saving category')
        return Response(category)

    try:
        category = client.get_category(pk)
        products = extract_products(client.list_products_by_category(pk))
        if products:
            name = category.get('name', pk) if isinstance(category, dict) else pk
            return Response(
                {'error': f'Category "{name}" is not empty ({len(products)} products).'},
                status=status.HTTP_409_CONFLICT
            )
        client.delete_category(pk)
    except BackendAPIError as e:
        return backend_error_response(e, 'Error deleting category')
    logger.info(f"Category {pk} deleted")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsBackendAdmin])
def admin_banner_create(request):
    serializer = BannerFormSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    image, error_response = _single_image(request, required=True)
    if error_response:
        return error_response

    try:
        banner = get_client(request).create_banner(serializer.to_backend_payload(), image)
    except BackendAPIError as e:
        return backend_error_response(e, 'Error saving banner')
    return Response(banner, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsBackendAdmin])
def admin_banner_detail(request, pk):
    client = get_client(request)

    if request.method == 'PUT':
        serializer = BannerFormSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        image, error_response = _single_image(request)
        if error_response:
            return error_response
        try:
            banner = client.update_banner(pk, serializer.to_backend_payload(), image)
        except BackendAPIError as e:
            return backend_error_response(e, 'Error saving banner')
        return Response(banner)

    try:
        client.delete_banner(pk)
    except BackendAPIError as e:
        return backend_error_response(e, 'Error deleting banner')
    return Response(status=status.HTTP_204_NO_CONTENT)
