from django.urls import path
from .views import (
    product_list, product_detail,
    category_list, category_detail, category_products,
    banner_list, specifications_parse,
    admin_dashboard, admin_product_create, admin_product_detail,
    admin_category_create, admin_category_detail,
    admin_banner_create, admin_banner_detail,
)

urlpatterns = [
    # Storefront endpoints
    path('products/', product_list, name='product-list'),
    path('products/<str:pk>/', product_detail, name='product-detail'),
    path('categories/', category_list, name='category-list'),
    path('categories/<str:pk>/', category_detail, name='category-detail'),
    path('categories/<str:pk>/products/', category_products, name='category-products'),
    path('banners/', banner_list, name='banner-list'),
    path('specifications/parse/', specifications_parse, name='specifications-parse'),

    # Admin endpoints
    path('admin/dashboard/', admin_dashboard, name='admin-dashboard'),
    path('admin/products/', admin_product_create, name='admin-product-create'),
    path('admin/products/<str:pk>/', admin_product_detail, name='admin-product-detail'),
    path('admin/categories/', admin_category_create, name='admin-category-create'),
    path('admin/categories/<str:pk>/', admin_category_detail, name='admin-category-detail'),
    path('admin/banners/', admin_banner_create, name='admin-banner-create'),
    path('admin/banners/<str:pk>/', admin_banner_detail, name='admin-banner-detail'),
]
