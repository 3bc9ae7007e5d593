"""
Tests for core: authentication, uploads, permissions, cache helpers, audit log
"""
import shutil
import tempfile

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from backend.core.cache_utils import (
    CUSTOM_DESIGN, invalidate_request_cache, invalidate_cache_pattern,
    request_detail_key, request_user_list_key, make_cache_key,
)
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.core.utils import create_audit_log


class AuthTests(TestCase):
    """Test registration, login and the current-user endpoint"""

    def setUp(self):
        self.client = APIClient()

    def test_register_creates_customer(self):
        """Test registration returns tokens and a customer account"""
        response = self.client.post('/api/auth/register/', {
            'username': 'ananya',
            'email': 'ananya@example.com',
            'password': 'Sapphire-Ring-2024',
            'password_confirm': 'Sapphire-Ring-2024',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user']['role'], 'customer')
        self.assertFalse(response.data['user']['is_admin'])

    def test_register_password_mismatch(self):
        """Test mismatched passwords are rejected"""
        response = self.client.post('/api/auth/register/', {
            'username': 'ananya',
            'password': 'Sapphire-Ring-2024',
            'password_confirm': 'Emerald-Ring-2024',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', response.data)

    def test_register_cannot_claim_admin_role(self):
        """Test role is not writable through registration"""
        response = self.client.post('/api/auth/register/', {
            'username': 'sneaky',
            'password': 'Sapphire-Ring-2024',
            'password_confirm': 'Sapphire-Ring-2024',
            'role': 'admin',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], 'customer')

    def test_login_and_me(self):
        """Test login returns a token that authenticates /auth/me/"""
        TestDataFactory.create_user(username='meera', password='testpass123')
        response = self.client.post('/api/auth/login/', {'username': 'meera', 'password': 'testpass123'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['user']['username'], 'meera')

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        me = self.client.get('/api/auth/me/')
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data['username'], 'meera')

    def test_login_wrong_password(self):
        """Test bad credentials are rejected"""
        TestDataFactory.create_user(username='meera', password='testpass123')
        response = self.client.post('/api/auth/login/', {'username': 'meera', 'password': 'nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh(self):
        """Test refresh token exchange"""
        TestDataFactory.create_user(username='meera', password='testpass123')
        login = self.client.post('/api/auth/login/', {'username': 'meera', 'password': 'testpass123'}, format='json')
        response = self.client.post('/api/auth/refresh/', {'refresh': login.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_me_requires_authentication(self):
        """Test anonymous access to /auth/me/ is refused"""
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AdminRoleTests(TestCase):
    """Test the admin role permission"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_customer_is_forbidden(self):
        """Test customers cannot reach admin endpoints"""
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/admin/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_role_allowed(self):
        """Test admin role grants access"""
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/admin/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_superuser_allowed(self):
        """Test superusers count as admins"""
        self.client.authenticate_user(TestDataFactory.create_user(is_superuser=True))
        response = self.client.get('/api/admin/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)


class UploadTests(TestCase):
    """Test image upload validation and storage"""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.settings_override = override_settings(MEDIA_ROOT=self.media_root)
        self.settings_override.enable()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def tearDown(self):
        self.settings_override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)

    def test_upload_png(self):
        """Test a valid PNG is stored and its URL returned"""
        response = self.client.post('/api/upload/', {'image': TestDataFactory.create_image_file()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['url'].startswith('/media/uploads/'))
        self.assertTrue(response.data['url'].endswith('.png'))

    def test_upload_gif(self):
        """Test GIF images are accepted"""
        image = TestDataFactory.create_image_file(name='sparkle.gif', image_format='GIF')
        response = self.client.post('/api/upload/', {'image': image}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_upload_rejects_non_image(self):
        """Test a text file disguised as PNG is rejected"""
        fake = SimpleUploadedFile('photo.png', b'not really an image', content_type='image/png')
        response = self.client.post('/api/upload/', {'image': fake}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_rejects_extension(self):
        """Test disallowed extensions are rejected"""
        image = TestDataFactory.create_image_file(name='photo.bmp')
        response = self.client.post('/api/upload/', {'image': image}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(MAX_IMAGE_UPLOAD_SIZE=16)
    def test_upload_rejects_large_file(self):
        """Test files over the size limit are rejected"""
        response = self.client.post('/api/upload/', {'image': TestDataFactory.create_image_file()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_upload_requires_authentication(self):
        """Test anonymous uploads are refused"""
        self.client.logout()
        response = self.client.post('/api/upload/', {'image': TestDataFactory.create_image_file()}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class CacheUtilsTests(TestCase):
    """Test cache key helpers and invalidation"""

    def setUp(self):
        cache.clear()

    def test_make_cache_key_is_stable(self):
        """Test keyword order does not change the key"""
        self.assertEqual(
            make_cache_key('products_list', a=1, b=2),
            make_cache_key('products_list', b=2, a=1),
        )
        self.assertTrue(make_cache_key('products_list', a=1).startswith('products_list:'))

    def test_invalidate_request_cache(self):
        """Test request invalidation drops the thread and the owner's list only"""
        cache.set(request_detail_key(CUSTOM_DESIGN, 7), {'id': 7})
        cache.set(request_user_list_key(CUSTOM_DESIGN, 3), [{'id': 7}])
        cache.set(request_user_list_key(CUSTOM_DESIGN, 4), [{'id': 8}])

        invalidate_request_cache(CUSTOM_DESIGN, 7, owner_id=3)

        self.assertIsNone(cache.get(request_detail_key(CUSTOM_DESIGN, 7)))
        self.assertIsNone(cache.get(request_user_list_key(CUSTOM_DESIGN, 3)))
        self.assertEqual(cache.get(request_user_list_key(CUSTOM_DESIGN, 4)), [{'id': 8}])

    def test_invalidate_pattern_on_local_memory(self):
        """Test pattern invalidation clears backends without key scanning"""
        key = make_cache_key('products_list', search='ring')
        cache.set(key, ['cached'])
        invalidate_cache_pattern('products_list')
        self.assertIsNone(cache.get(key))


class AuditLogTests(TestCase):
    """Test audit log helper"""

    def test_create_audit_log_with_user(self):
        """Test an entry is written for an explicit user"""
        admin = TestDataFactory.create_admin()
        entry = create_audit_log(action='update', model_name='Product', object_id=5, user=admin, changes={'a': 1})
        self.assertIsNotNone(entry)
        self.assertEqual(entry.user, admin)
        self.assertEqual(entry.object_id, '5')

    def test_create_audit_log_skips_missing_fields(self):
        """Test missing required fields skip the entry without raising"""
        self.assertIsNone(create_audit_log(action='update', model_name=None, object_id=1))
        self.assertEqual(AuditLog.objects.count(), 0)
