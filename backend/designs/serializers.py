from rest_framework import serializers

from .models import (
    CustomDesignRequest, CustomizationRequest, DesignPayment, REQUEST_STATUS_CHOICES,
)
from backend.core.uploads import validate_image_upload


class CommentSerializer(serializers.Serializer):
    """Read shape shared by both comment tables"""
    id = serializers.IntegerField(read_only=True)
    content = serializers.CharField(read_only=True)
    image_url = serializers.CharField(read_only=True)
    is_admin = serializers.BooleanField(read_only=True)
    created_by = serializers.CharField(read_only=True)
    author_label = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField(read_only=True)

    def get_author_label(self, obj):
        return 'Jewelry Team' if obj.is_admin else obj.created_by


class CommentCreateSerializer(serializers.Serializer):
    content = serializers.CharField(required=False, allow_blank=True, default='')
    image = serializers.FileField(required=False, allow_null=True, default=None)

    def validate_image(self, value):
        if value is not None:
            validate_image_upload(value)
        return value

    def validate(self, attrs):
        if not attrs.get('content', '').strip() and attrs.get('image') is None:
            raise serializers.ValidationError({'content': ['Add a message or an image.']})
        return attrs


class DesignPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = DesignPayment
        fields = ['id', 'design_request', 'user', 'amount', 'payment_type', 'payment_method',
                  'transaction_id', 'status', 'created_at']
        read_only_fields = ['design_request', 'user', 'created_at']

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be positive.")
        return value


class CustomDesignRequestSerializer(serializers.ModelSerializer):
    primary_stones = serializers.ListField(child=serializers.CharField(), required=False)
    image_urls = serializers.ListField(child=serializers.CharField(), required=False)
    comments_count = serializers.SerializerMethodField()

    class Meta:
        model = CustomDesignRequest
        fields = ['id', 'user', 'full_name', 'email', 'phone', 'country', 'metal_type', 'primary_stones',
                  'notes', 'image_url', 'image_urls', 'status', 'quoted_price', 'cad_image_url',
                  'consultation_fee_paid', 'iterations_count', 'comments_count', 'created_at', 'updated_at']
        read_only_fields = ['user', 'status', 'quoted_price', 'cad_image_url', 'consultation_fee_paid',
                            'iterations_count', 'created_at', 'updated_at']

    def get_comments_count(self, obj):
        return obj.comments.count()


class CustomDesignRequestDetailSerializer(CustomDesignRequestSerializer):
    comments = CommentSerializer(many=True, read_only=True)
    payments = DesignPaymentSerializer(many=True, read_only=True)

    class Meta(CustomDesignRequestSerializer.Meta):
        fields = CustomDesignRequestSerializer.Meta.fields + ['comments', 'payments']


class CustomizationRequestSerializer(serializers.ModelSerializer):
    preferred_stones = serializers.ListField(child=serializers.CharField(), required=False)
    product_name = serializers.CharField(source='product.name', read_only=True, default=None)
    comments_count = serializers.SerializerMethodField()

    class Meta:
        model = CustomizationRequest
        fields = ['id', 'user', 'product', 'product_name', 'name', 'email', 'phone', 'customization_details',
                  'preferred_metal', 'preferred_stones', 'preferred_budget', 'timeline', 'status',
                  'quoted_price', 'cad_image_url', 'comments_count', 'created_at', 'updated_at']
        read_only_fields = ['user', 'status', 'quoted_price', 'cad_image_url', 'created_at', 'updated_at']

    def get_comments_count(self, obj):
        return obj.comments.count()


class CustomizationRequestDetailSerializer(CustomizationRequestSerializer):
    comments = CommentSerializer(many=True, read_only=True)

    class Meta(CustomizationRequestSerializer.Meta):
        fields = CustomizationRequestSerializer.Meta.fields + ['comments']


class RequestUpdateSerializer(serializers.Serializer):
    """Admin update of a request; every field optional"""
    status = serializers.ChoiceField(choices=REQUEST_STATUS_CHOICES, required=False)
    quoted_price = serializers.IntegerField(min_value=0, required=False)
    cad_image_url = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Nothing to update.")
        return attrs
