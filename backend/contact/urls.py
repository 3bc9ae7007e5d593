from django.urls import path
from .views import contact_create, admin_contact_list, admin_contact_detail

urlpatterns = [
    path('contact/', contact_create, name='contact-create'),
    path('admin/contact/', admin_contact_list, name='admin-contact-list'),
    path('admin/contact/<int:pk>/', admin_contact_detail, name='admin-contact-detail'),
]
