from django.db import models


class ContactMessage(models.Model):
    """Message sent through the storefront contact form"""
    name = models.CharField(max_length=200)
    email = models.EmailField()
    phone = models.CharField(max_length=30, blank=True)
    message = models.TextField()
    is_read = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.name} <{self.email}>"

    class Meta:
        db_table = 'contact_messages'
        ordering = ['-created_at', '-id']
