from django.conf import settings
from django.db import models


REQUEST_STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('quoted', 'Quoted'),
    ('approved', 'Approved'),
    ('rejected', 'Rejected'),
    ('completed', 'Completed'),
]

# Allowed status moves; repeating the current status is always a no-op
REQUEST_STATUS_TRANSITIONS = {
    'pending': {'quoted', 'approved', 'rejected'},
    'quoted': {'quoted', 'approved', 'rejected'},
    'approved': {'completed'},
    'rejected': set(),
    'completed': set(),
}


class CustomDesignRequest(models.Model):
    """A from-scratch design request with reference imagery"""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='design_requests')
    full_name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=30, blank=True)
    country = models.CharField(max_length=100, blank=True)
    metal_type = models.CharField(max_length=100)
    primary_stones = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    image_url = models.CharField(max_length=500, blank=True)
    image_urls = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=REQUEST_STATUS_CHOICES, default='pending', db_index=True)
    quoted_price = models.PositiveIntegerField(null=True, blank=True, help_text="Quoted price in INR")
    cad_image_url = models.CharField(max_length=500, blank=True)
    consultation_fee_paid = models.BooleanField(default=False)
    iterations_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Design request #{self.pk} - {self.full_name}"

    class Meta:
        db_table = 'design_requests'
        ordering = ['-created_at', '-id']


class CustomizationRequest(models.Model):
    """A request to customize an existing catalog product"""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='customization_requests')
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='customization_requests')
    name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=30, blank=True)
    customization_details = models.TextField()
    preferred_metal = models.CharField(max_length=100, blank=True)
    preferred_stones = models.JSONField(default=list, blank=True)
    preferred_budget = models.CharField(max_length=100, blank=True)
    timeline = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, choices=REQUEST_STATUS_CHOICES, default='pending', db_index=True)
    quoted_price = models.PositiveIntegerField(null=True, blank=True, help_text="Quoted price in INR")
    cad_image_url = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Customization request #{self.pk} - {self.name}"

    class Meta:
        db_table = 'customization_requests'
        ordering = ['-created_at', '-id']


class RequestComment(models.Model):
    """Thread comment; at least one of content/image_url is set"""
    content = models.TextField(blank=True)
    image_url = models.CharField(max_length=500, blank=True)
    is_admin = models.BooleanField(default=False)
    created_by = models.CharField(max_length=150)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.created_by}: {self.content[:40]}"


class DesignRequestComment(RequestComment):
    request = models.ForeignKey(CustomDesignRequest, on_delete=models.CASCADE, related_name='comments')

    class Meta(RequestComment.Meta):
        db_table = 'design_request_comments'


class CustomizationComment(RequestComment):
    request = models.ForeignKey(CustomizationRequest, on_delete=models.CASCADE, related_name='comments')

    class Meta(RequestComment.Meta):
        db_table = 'customization_comments'


class DesignPayment(models.Model):
    """Recorded payment against a design request (gateway capture happens elsewhere)"""
    PAYMENT_TYPE_CHOICES = [
        ('consultation_fee', 'Consultation Fee'),
        ('deposit', 'Deposit'),
        ('final_payment', 'Final Payment'),
    ]
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]

    design_request = models.ForeignKey(CustomDesignRequest, on_delete=models.CASCADE, related_name='payments')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='design_payments')
    amount = models.PositiveIntegerField(help_text="Amount in INR")
    payment_type = models.CharField(max_length=20, choices=PAYMENT_TYPE_CHOICES)
    payment_method = models.CharField(max_length=50, blank=True)
    transaction_id = models.CharField(max_length=200, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.get_payment_type_display()} {self.amount} for design #{self.design_request_id}"

    class Meta:
        db_table = 'design_payments'
        ordering = ['-created_at', '-id']
