from django.contrib import admin
from .models import Testimonial


@admin.register(Testimonial)
class TestimonialAdmin(admin.ModelAdmin):
    list_display = ['name', 'rating', 'product_type', 'status', 'created_at', 'moderated_at']
    list_filter = ['status', 'rating', 'created_at']
    search_fields = ['name', 'text', 'product_type']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at', 'moderated_at']
