from django.urls import path
from .views import admin_images_validate, admin_preview_detail, admin_previews_release

urlpatterns = [
    path('admin/images/validate/', admin_images_validate, name='admin-images-validate'),
    path('admin/images/previews/release/', admin_previews_release, name='admin-previews-release'),
    path('admin/images/previews/<uuid:token>/', admin_preview_detail, name='admin-preview-detail'),
]
