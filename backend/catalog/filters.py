import django_filters
from django.db.models import Q

from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Storefront product filter using django-filter"""

    # Basic search - name, description, legacy category, product type
    search = django_filters.CharFilter(method='filter_search', label='Search')

    product_type = django_filters.NumberFilter(field_name='product_type_id', lookup_expr='exact')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    featured = django_filters.BooleanFilter(field_name='is_featured')
    is_new = django_filters.BooleanFilter(field_name='is_new')
    bestseller = django_filters.BooleanFilter(field_name='is_bestseller')

    # Base price range (INR)
    min_price = django_filters.NumberFilter(field_name='base_price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='base_price', lookup_expr='lte')

    class Meta:
        model = Product
        fields = ['search', 'product_type', 'category', 'featured', 'is_new', 'bestseller',
                  'min_price', 'max_price']

    def filter_search(self, queryset, name, value):
        """Every word must appear in the name, description, category or type name"""
        if not value:
            return queryset
        for word in value.split():
            queryset = queryset.filter(
                Q(name__icontains=word) |
                Q(description__icontains=word) |
                Q(category__icontains=word) |
                Q(product_type__name__icontains=word)
            )
        return queryset.distinct()
