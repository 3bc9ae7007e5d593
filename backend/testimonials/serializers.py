from rest_framework import serializers

from .models import Testimonial


class TestimonialSerializer(serializers.ModelSerializer):
    is_approved = serializers.BooleanField(read_only=True)
    image_urls = serializers.ListField(child=serializers.CharField(), required=False)

    class Meta:
        model = Testimonial
        fields = ['id', 'name', 'initials', 'product_type', 'rating', 'text', 'image_urls',
                  'purchase_date', 'status', 'is_approved', 'moderated_at', 'created_at']
        read_only_fields = ['status', 'moderated_at', 'created_at']

    def validate_rating(self, value):
        if value < 1 or value > 5:
            raise serializers.ValidationError("Rating must be between 1 and 5.")
        return value

    def validate_text(self, value):
        if not value.strip():
            raise serializers.ValidationError("Please share your story.")
        return value.strip()
