from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.core.cache import cache
from django.db.models import Q
from django.shortcuts import get_object_or_404
import logging

from .models import ProductType, MetalType, StoneType, Product
from .serializers import (
    ProductTypeSerializer, MetalTypeSerializer, StoneTypeSerializer,
    ProductSerializer, ProductListSerializer,
)
from .filters import ProductFilter
from .reconciler import build_product_display
from .rates import get_usd_to_inr_rate
from backend.core.cache_utils import (
    PRODUCTS_LIST_CACHE_TTL, PRODUCT_DETAIL_CACHE_TTL, CATALOG_TYPES_CACHE_TTL,
    products_list_key, product_detail_key, catalog_types_key,
)
from backend.core.permissions import IsAdminRole
from backend.core.utils import create_audit_log

logger = logging.getLogger(__name__)

RELATED_PRODUCTS_LIMIT = 4
FEATURED_PRODUCTS_LIMIT = 8


# Storefront product views
@api_view(['GET'])
@permission_classes([AllowAny])
def product_list(request):
    """List products with optional filters"""
    filters_dict = dict(sorted(request.query_params.items()))
    cache_key = products_list_key(filters_dict)
    data = cache.get(cache_key)
    if data is None:
        queryset = Product.objects.select_related('product_type')
        filterset = ProductFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        data = ProductListSerializer(filterset.qs, many=True).data
        cache.set(cache_key, data, PRODUCTS_LIST_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([AllowAny])
def product_featured(request):
    """Featured products for the home page"""
    cache_key = products_list_key({'featured': 'true', 'limit': FEATURED_PRODUCTS_LIMIT})
    data = cache.get(cache_key)
    if data is None:
        products = Product.objects.select_related('product_type').filter(is_featured=True)[:FEATURED_PRODUCTS_LIMIT]
        data = ProductListSerializer(products, many=True).data
        cache.set(cache_key, data, PRODUCTS_LIST_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([AllowAny])
def product_detail(request, pk):
    """Reconciled product detail with server-calculated prices"""
    cache_key = product_detail_key(pk)
    data = cache.get(cache_key)
    if data is None:
        product = get_object_or_404(Product.objects.select_related('product_type'), pk=pk)
        display = build_product_display(product)
        data = display.to_dict()
        data['base_price'] = product.base_price
        data['calculated_price_usd'] = display.price_usd
        data['calculated_price_inr'] = display.price_inr
        cache.set(cache_key, data, PRODUCT_DETAIL_CACHE_TTL)
    return Response(data)


@api_view(['GET'])
@permission_classes([AllowAny])
def product_related(request, pk):
    """Products sharing the product type (or legacy category)"""
    product = get_object_or_404(Product, pk=pk)
    related = Product.objects.select_related('product_type').exclude(pk=product.pk)
    match = Q()
    if product.product_type_id:
        match |= Q(product_type_id=product.product_type_id)
    if product.category:
        match |= Q(category__iexact=product.category)
    related = related.filter(match) if match else related.none()
    serializer = ProductListSerializer(related[:RELATED_PRODUCTS_LIMIT], many=True)
    return Response(serializer.data)


# Admin product views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_product_list_create(request):
    """List all products or create a new product"""
    if request.method == 'GET':
        products = Product.objects.select_related('product_type')
        filterset = ProductFilter(request.query_params, queryset=products)
        serializer = ProductSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save()
        create_audit_log(request, 'create', 'Product', product.id, object_name=product.name,
                         changes={'base_price': product.base_price})
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)

    if request.method == 'DELETE':
        product_id, product_name = product.id, product.name
        product.delete()
        create_audit_log(request, 'delete', 'Product', product_id, object_name=product_name)
        logger.info(f"Deleted product {product_id} ({product_name})")
        return Response(status=status.HTTP_204_NO_CONTENT)

    serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        create_audit_log(request, 'update', 'Product', product.id, object_name=product.name,
                         changes={'fields': sorted(request.data.keys())})
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# Reference data views
def _active_types(model, serializer_class, kind):
    cache_key = catalog_types_key(kind)
    data = cache.get(cache_key)
    if data is None:
        data = serializer_class(model.objects.filter(is_active=True), many=True).data
        cache.set(cache_key, data, CATALOG_TYPES_CACHE_TTL)
    return Response(data)


def _type_list_create(request, model, serializer_class):
    if request.method == 'GET':
        return Response(serializer_class(model.objects.all(), many=True).data)
    serializer = serializer_class(data=request.data)
    if serializer.is_valid():
        instance = serializer.save()
        create_audit_log(request, 'create', model.__name__, instance.id, object_name=instance.name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _type_detail(request, model, serializer_class, pk):
    instance = get_object_or_404(model, pk=pk)
    if request.method == 'GET':
        return Response(serializer_class(instance).data)
    if request.method == 'DELETE':
        instance.delete()
        create_audit_log(request, 'delete', model.__name__, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
    serializer = serializer_class(instance, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        create_audit_log(request, 'update', model.__name__, pk, object_name=instance.name,
                         changes=dict(request.data.items()))
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([AllowAny])
def product_type_list(request):
    """Active product types"""
    return _active_types(ProductType, ProductTypeSerializer, 'product_types')


@api_view(['GET'])
@permission_classes([AllowAny])
def metal_type_list(request):
    """Active metal types"""
    return _active_types(MetalType, MetalTypeSerializer, 'metal_types')


@api_view(['GET'])
@permission_classes([AllowAny])
def stone_type_list(request):
    """Active stone types"""
    return _active_types(StoneType, StoneTypeSerializer, 'stone_types')


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_product_type_list_create(request):
    return _type_list_create(request, ProductType, ProductTypeSerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_product_type_detail(request, pk):
    return _type_detail(request, ProductType, ProductTypeSerializer, pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_metal_type_list_create(request):
    return _type_list_create(request, MetalType, MetalTypeSerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_metal_type_detail(request, pk):
    return _type_detail(request, MetalType, MetalTypeSerializer, pk)


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def admin_stone_type_list_create(request):
    return _type_list_create(request, StoneType, StoneTypeSerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def admin_stone_type_detail(request, pk):
    return _type_detail(request, StoneType, StoneTypeSerializer, pk)


@api_view(['GET'])
@permission_classes([AllowAny])
def exchange_rate(request):
    """Current USD to INR rate (cached for an hour)"""
    return Response(get_usd_to_inr_rate().to_dict())
