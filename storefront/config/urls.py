"""
URL configuration for the storefront project.

Every app mounts its endpoints under /api/v1/, mirroring the layout the
storefront and admin UIs call.
"""
from django.urls import path, include

urlpatterns = [
    path('api/v1/', include('storefront.core.urls')),
    path('api/v1/', include('storefront.catalog.urls')),
    path('api/v1/', include('storefront.uploads.urls')),
]
