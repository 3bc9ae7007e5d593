from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models


class Testimonial(models.Model):
    """Customer story; shown publicly once approved"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='testimonials')
    name = models.CharField(max_length=100)
    initials = models.CharField(max_length=5, blank=True)
    product_type = models.CharField(max_length=100, blank=True)
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    text = models.TextField()
    image_urls = models.JSONField(default=list, blank=True)
    purchase_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    moderated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.rating}/5, {self.status})"

    @property
    def is_approved(self):
        return self.status == 'approved'

    def save(self, *args, **kwargs):
        if not self.initials and self.name:
            self.initials = ''.join(part[0] for part in self.name.split()[:2]).upper()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'testimonials'
        ordering = ['-created_at', '-id']
