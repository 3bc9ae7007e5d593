from django.contrib import admin
from .models import ProductType, MetalType, StoneType, Product


@admin.register(ProductType)
class ProductTypeAdmin(admin.ModelAdmin):
    list_display = ['name', 'display_order', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']
    ordering = ['display_order', 'name']


@admin.register(MetalType)
class MetalTypeAdmin(admin.ModelAdmin):
    list_display = ['name', 'price_modifier', 'display_order', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name']
    ordering = ['display_order', 'name']


@admin.register(StoneType)
class StoneTypeAdmin(admin.ModelAdmin):
    list_display = ['name', 'price_modifier', 'display_order', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name']
    ordering = ['display_order', 'name']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'base_price', 'product_type', 'is_featured', 'is_new', 'is_bestseller', 'created_at']
    list_filter = ['is_featured', 'is_new', 'is_bestseller', 'product_type', 'created_at']
    search_fields = ['name', 'description', 'category']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at']
