"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.catalog.models import ProductType, MetalType, StoneType, Product
from backend.designs.models import CustomDesignRequest, CustomizationRequest
from backend.testimonials.models import Testimonial
from backend.contact.models import ContactMessage
from io import BytesIO
from PIL import Image
import json
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='customer', is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_superuser=is_superuser,
        )

    @staticmethod
    def create_admin(username=None):
        """Create a user holding the admin role"""
        return TestDataFactory.create_user(username=username or f'admin_{TestDataFactory.random_string(6)}', role='admin')

    @staticmethod
    def create_product_type(name=None, display_order=0):
        if not name:
            name = f'Type_{TestDataFactory.random_string(6)}'
        return ProductType.objects.create(name=name, display_order=display_order)

    @staticmethod
    def create_metal_type(name=None, price_modifier=75.0):
        if not name:
            name = f'Metal_{TestDataFactory.random_string(6)}'
        return MetalType.objects.create(name=name, price_modifier=price_modifier)

    @staticmethod
    def create_stone_type(name=None, price_modifier=1000.0):
        if not name:
            name = f'Stone_{TestDataFactory.random_string(6)}'
        return StoneType.objects.create(name=name, price_modifier=price_modifier)

    @staticmethod
    def create_product(name=None, base_price=83000, details=None, ai_inputs=None, product_type=None, **extra):
        """Create a test product; dict details are stored as JSON text"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if isinstance(details, dict):
            details = json.dumps(details)
        return Product.objects.create(
            name=name,
            description=f'Test product {name}',
            base_price=base_price,
            details=details,
            ai_inputs=ai_inputs,
            product_type=product_type,
            **extra
        )

    @staticmethod
    def create_design_request(user=None, status='pending', **extra):
        """Create a test custom design request"""
        full_name = extra.pop('full_name', f'Client {TestDataFactory.random_string(4)}')
        return CustomDesignRequest.objects.create(
            user=user,
            full_name=full_name,
            email=extra.pop('email', f'{TestDataFactory.random_string(6).lower()}@test.com'),
            metal_type=extra.pop('metal_type', '18K Yellow Gold'),
            primary_stones=extra.pop('primary_stones', ['Diamond']),
            status=status,
            **extra
        )

    @staticmethod
    def create_customization_request(user=None, product=None, status='pending', **extra):
        """Create a test customization request"""
        if product is None:
            product = TestDataFactory.create_product()
        return CustomizationRequest.objects.create(
            user=user,
            product=product,
            name=extra.pop('name', f'Client {TestDataFactory.random_string(4)}'),
            email=extra.pop('email', f'{TestDataFactory.random_string(6).lower()}@test.com'),
            customization_details=extra.pop('customization_details', 'Please use rose gold instead'),
            status=status,
            **extra
        )

    @staticmethod
    def create_testimonial(status='pending', name=None, rating=5, **extra):
        """Create a test testimonial"""
        return Testimonial.objects.create(
            name=name or f'Customer {TestDataFactory.random_string(4)}',
            rating=rating,
            text=extra.pop('text', 'Beautiful craftsmanship, exactly what I asked for.'),
            product_type=extra.pop('product_type', 'Ring'),
            status=status,
            **extra
        )

    @staticmethod
    def create_contact_message(is_read=False):
        return ContactMessage.objects.create(
            name=f'Visitor {TestDataFactory.random_string(4)}',
            email=f'{TestDataFactory.random_string(6).lower()}@test.com',
            message='I would like to know more about custom rings.',
            is_read=is_read,
        )

    @staticmethod
    def create_image_file(name='photo.png', image_format='PNG', size=(4, 4)):
        """In-memory image upload"""
        buffer = BytesIO()
        Image.new('RGB', size, color=(200, 160, 40)).save(buffer, format=image_format)
        content_type = f'image/{image_format.lower()}'
        return SimpleUploadedFile(name, buffer.getvalue(), content_type=content_type)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
