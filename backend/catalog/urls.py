from django.urls import path
from .views import (
    product_list, product_featured, product_detail, product_related,
    admin_product_list_create, admin_product_detail,
    product_type_list, metal_type_list, stone_type_list,
    admin_product_type_list_create, admin_product_type_detail,
    admin_metal_type_list_create, admin_metal_type_detail,
    admin_stone_type_list_create, admin_stone_type_detail,
    exchange_rate,
)

urlpatterns = [
    # Storefront product endpoints
    path('products/', product_list, name='product-list'),
    path('products/featured/', product_featured, name='product-featured'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/related/', product_related, name='product-related'),

    # Admin product endpoints
    path('admin/products/', admin_product_list_create, name='admin-product-list-create'),
    path('admin/products/<int:pk>/', admin_product_detail, name='admin-product-detail'),

    # Reference data endpoints
    path('product-types/', product_type_list, name='product-type-list'),
    path('metal-types/', metal_type_list, name='metal-type-list'),
    path('stone-types/', stone_type_list, name='stone-type-list'),
    path('admin/product-types/', admin_product_type_list_create, name='admin-product-type-list-create'),
    path('admin/product-types/<int:pk>/', admin_product_type_detail, name='admin-product-type-detail'),
    path('admin/metal-types/', admin_metal_type_list_create, name='admin-metal-type-list-create'),
    path('admin/metal-types/<int:pk>/', admin_metal_type_detail, name='admin-metal-type-detail'),
    path('admin/stone-types/', admin_stone_type_list_create, name='admin-stone-type-list-create'),
    path('admin/stone-types/<int:pk>/', admin_stone_type_detail, name='admin-stone-type-detail'),

    # Exchange rate
    path('exchange-rate/', exchange_rate, name='exchange-rate'),
]
