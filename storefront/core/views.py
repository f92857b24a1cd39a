from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
import logging

from .api_client import CatalogAPIClient, BackendAPIError
from .authentication import IsBackendAdmin
from .serializers import ContactMessageSerializer, AdminLoginSerializer
from .utils import get_client_ip, backend_error_response

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def contact_submit(request):
    """Validate a contact form submission"""
    serializer = ContactMessageSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    logger.info(
        f"Contact message from {data['email']} ({get_client_ip(request)}): {data['subject']}"
    )
    return Response({'message': 'Your message has been sent successfully!'})


@api_view(['POST'])
@permission_classes([AllowAny])
def admin_login(request):
    """Validate credentials locally, then exchange them for a backend token"""
    serializer = AdminLoginSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        data = CatalogAPIClient().login(serializer.validated_data)
    except BackendAPIError as e:
        if e.status_code in (400, 401, 403):
            return Response(
                {'error': e.payload.get('message') or 'Invalid email or password'},
                status=status.HTTP_401_UNAUTHORIZED
            )
        return backend_error_response(e)

    token = data.get('token') if isinstance(data, dict) else None
    if not token:
        logger.error("Backend login succeeded without returning a token")
        return Response({'error': 'Login failed. Please try again.'}, status=status.HTTP_502_BAD_GATEWAY)

    return Response({'token': token, 'message': 'Welcome back, Admin!'})


@api_view(['GET'])
@permission_classes([IsBackendAdmin])
def admin_verify(request):
    """Report the admin behind the current token"""
    return Response({'valid': True, 'email': request.user.email})
