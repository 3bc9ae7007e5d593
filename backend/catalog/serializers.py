from rest_framework import serializers
import json

from .models import ProductType, MetalType, StoneType, Product
from .reconciler import calculated_prices_for


class ProductTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductType
        fields = ['id', 'name', 'description', 'display_order', 'is_active', 'icon', 'color', 'created_at', 'updated_at']


class MetalTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = MetalType
        fields = ['id', 'name', 'description', 'price_modifier', 'display_order', 'is_active', 'color', 'created_at', 'updated_at']

    def validate_price_modifier(self, value):
        if value <= 0 or value > 100:
            raise serializers.ValidationError("Purity must be a percentage between 0 and 100.")
        return value


class StoneTypeSerializer(serializers.ModelSerializer):
    class Meta:
        model = StoneType
        fields = ['id', 'name', 'description', 'price_modifier', 'display_order', 'is_active', 'color', 'image_url', 'created_at', 'updated_at']

    def validate_price_modifier(self, value):
        if value < 0:
            raise serializers.ValidationError("Per-carat price cannot be negative.")
        return value


class ProductListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for product cards"""
    product_type_name = serializers.CharField(source='product_type.name', read_only=True, default=None)
    price_usd = serializers.SerializerMethodField()
    price_inr = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'base_price', 'price_usd', 'price_inr', 'image_url',
                  'is_new', 'is_bestseller', 'is_featured', 'category', 'product_type', 'product_type_name']

    def _prices(self, obj):
        if not hasattr(obj, '_calculated_prices'):
            obj._calculated_prices = calculated_prices_for(obj)
        return obj._calculated_prices

    def get_price_usd(self, obj):
        return self._prices(obj)[0]

    def get_price_inr(self, obj):
        return self._prices(obj)[1]


class ProductSerializer(serializers.ModelSerializer):
    """Admin serializer; `details` accepts either a JSON object or text"""
    details = serializers.JSONField(required=False, allow_null=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'base_price', 'image_url', 'additional_images', 'details',
                  'dimensions', 'is_new', 'is_bestseller', 'is_featured', 'category', 'product_type',
                  'ai_inputs', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_details(self, value):
        if value is None or isinstance(value, str):
            return value
        if not isinstance(value, dict):
            raise serializers.ValidationError("Details must be a JSON object or text.")
        return json.dumps(value)

    def validate_additional_images(self, value):
        if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
            raise serializers.ValidationError("Additional images must be a list of URLs.")
        return value

    def to_representation(self, instance):
        data = super().to_representation(instance)
        # Stored as text; hand well-formed JSON back as an object
        raw = instance.details
        if isinstance(raw, str) and raw.strip():
            try:
                data['details'] = json.loads(raw)
            except ValueError:
                data['details'] = raw
        return data
