from django.db import models


class ProductType(models.Model):
    """Product types (rings, necklaces, earrings, ...)"""
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    display_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    icon = models.CharField(max_length=100, blank=True)
    color = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'product_types'
        ordering = ['display_order', 'name']


class MetalType(models.Model):
    """Metal types; price_modifier is the purity percentage (e.g. 75 for 18K)"""
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    price_modifier = models.FloatField(default=100.0)
    display_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    color = models.CharField(max_length=20, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'metal_types'
        ordering = ['display_order', 'name']


class StoneType(models.Model):
    """Stone types; price_modifier is the per-carat price in INR"""
    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    price_modifier = models.FloatField(default=0.0)
    display_order = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    color = models.CharField(max_length=20, blank=True)
    image_url = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'stone_types'
        ordering = ['display_order', 'name']


class Product(models.Model):
    """
    Catalog product.

    `details` holds a serialized JSON document written by older admin forms
    and by AI content generation (keys such as `additionalData`,
    `additionalData.aiInputs`, `metalWeight`, `tagline`). It is kept as text
    because legacy rows are not guaranteed to be valid JSON.
    """
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    base_price = models.PositiveIntegerField(help_text="Base price in INR")
    image_url = models.CharField(max_length=500, blank=True)
    additional_images = models.JSONField(default=list, blank=True)
    details = models.TextField(blank=True, null=True)
    dimensions = models.CharField(max_length=200, blank=True)
    is_new = models.BooleanField(default=False)
    is_bestseller = models.BooleanField(default=False)
    is_featured = models.BooleanField(default=False, db_index=True)
    category = models.CharField(max_length=100, blank=True, help_text="Legacy free-text category")
    product_type = models.ForeignKey(ProductType, on_delete=models.SET_NULL, null=True, blank=True, related_name='products')
    ai_inputs = models.JSONField(null=True, blank=True, help_text="Inputs used for AI content generation, kept for regeneration")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'products'
        ordering = ['-created_at', '-id']
