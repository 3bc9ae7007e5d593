from django.urls import path
from .views import (
    custom_design_create, custom_design_list, custom_design_user_list,
    custom_design_detail, custom_design_comments, custom_design_payments,
    customization_request_list_create, customization_request_user_list,
    customization_request_detail, customization_request_comments,
)

urlpatterns = [
    # Custom design requests
    path('custom-design/', custom_design_create, name='custom-design-create'),
    path('custom-designs/', custom_design_list, name='custom-design-list'),
    path('custom-designs/user/', custom_design_user_list, name='custom-design-user-list'),
    path('custom-designs/<int:pk>/', custom_design_detail, name='custom-design-detail'),
    path('custom-designs/<int:pk>/comments/', custom_design_comments, name='custom-design-comments'),
    path('custom-designs/<int:pk>/payments/', custom_design_payments, name='custom-design-payments'),

    # Customization requests
    path('customization-requests/', customization_request_list_create, name='customization-request-list-create'),
    path('customization-requests/user/', customization_request_user_list, name='customization-request-user-list'),
    path('customization-requests/<int:pk>/', customization_request_detail, name='customization-request-detail'),
    path('customization-requests/<int:pk>/comments/', customization_request_comments, name='customization-request-comments'),
]
