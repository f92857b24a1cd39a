from django.urls import path
from .views import contact_submit, admin_login, admin_verify

urlpatterns = [
    path('contact/', contact_submit, name='contact-submit'),

    # Admin session endpoints
    path('admin/login/', admin_login, name='admin-login'),
    path('admin/verify/', admin_verify, name='admin-verify'),
]
