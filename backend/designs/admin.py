from django.contrib import admin
from .models import (
    CustomDesignRequest, CustomizationRequest,
    DesignRequestComment, CustomizationComment, DesignPayment,
)


class DesignRequestCommentInline(admin.TabularInline):
    model = DesignRequestComment
    extra = 0
    readonly_fields = ['created_by', 'is_admin', 'created_at']


class CustomizationCommentInline(admin.TabularInline):
    model = CustomizationComment
    extra = 0
    readonly_fields = ['created_by', 'is_admin', 'created_at']


@admin.register(CustomDesignRequest)
class CustomDesignRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'full_name', 'email', 'metal_type', 'status', 'quoted_price', 'consultation_fee_paid', 'created_at']
    list_filter = ['status', 'consultation_fee_paid', 'created_at']
    search_fields = ['full_name', 'email', 'notes']
    ordering = ['-created_at']
    inlines = [DesignRequestCommentInline]


@admin.register(CustomizationRequest)
class CustomizationRequestAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'email', 'product', 'status', 'quoted_price', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['name', 'email', 'customization_details']
    ordering = ['-created_at']
    inlines = [CustomizationCommentInline]


@admin.register(DesignPayment)
class DesignPaymentAdmin(admin.ModelAdmin):
    list_display = ['design_request', 'amount', 'payment_type', 'status', 'transaction_id', 'created_at']
    list_filter = ['payment_type', 'status']
    search_fields = ['transaction_id', 'design_request__full_name']
    ordering = ['-created_at']
