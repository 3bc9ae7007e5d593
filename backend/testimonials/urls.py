from django.urls import path
from .views import (
    testimonial_list_create, admin_testimonial_list,
    admin_testimonial_approve, admin_testimonial_reject, admin_testimonial_delete,
)

urlpatterns = [
    path('testimonials/', testimonial_list_create, name='testimonial-list-create'),
    path('admin/testimonials/', admin_testimonial_list, name='admin-testimonial-list'),
    path('admin/testimonials/<int:pk>/', admin_testimonial_delete, name='admin-testimonial-delete'),
    path('admin/testimonials/<int:pk>/approve/', admin_testimonial_approve, name='admin-testimonial-approve'),
    path('admin/testimonials/<int:pk>/reject/', admin_testimonial_reject, name='admin-testimonial-reject'),
]
