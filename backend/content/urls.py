from django.urls import path
from .views import generate_content, product_regenerate_content

urlpatterns = [
    path('admin/generate-content/', generate_content, name='admin-generate-content'),
    path('products/<int:pk>/regenerate-content/', product_regenerate_content, name='product-regenerate-content'),
]
