"""
Tests for testimonial submission and moderation
"""
import shutil
import tempfile

from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status
from rest_framework.test import APIClient

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import Testimonial
from .services import ModerationConflict, moderate_testimonial


class TestimonialSubmissionTests(TestCase):
    """Test public testimonial endpoints"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.media_root = tempfile.mkdtemp()
        self.media_override = override_settings(MEDIA_ROOT=self.media_root)
        self.media_override.enable()

    def tearDown(self):
        self.media_override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)

    def test_submit_is_pending(self):
        """Test new testimonials wait for moderation"""
        response = self.client.post('/api/testimonials/', {
            'name': 'Priya Nair',
            'rating': 5,
            'text': 'The custom pendant was perfect.',
            'product_type': 'Pendant',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['initials'], 'PN')
        self.assertFalse(response.data['is_approved'])

    def test_client_cannot_self_approve(self):
        """Test the submitted status field is ignored"""
        response = self.client.post('/api/testimonials/', {
            'name': 'Priya Nair', 'rating': 5, 'text': 'Lovely', 'status': 'approved',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Testimonial.objects.get().status, 'pending')

    def test_submit_with_images(self):
        """Test photos are stored with the testimonial"""
        response = self.client.post('/api/testimonials/', {
            'name': 'Priya Nair', 'rating': 4, 'text': 'Beautiful earrings',
            'images': [TestDataFactory.create_image_file('wearing.jpg', image_format='JPEG')],
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['image_urls']), 1)
        self.assertTrue(response.data['image_urls'][0].endswith('.jpg'))

    def test_invalid_rating(self):
        """Test ratings outside 1-5 are rejected"""
        for rating in (0, 6):
            response = self.client.post('/api/testimonials/', {
                'name': 'Priya', 'rating': rating, 'text': 'Nice',
            }, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_public_list_excludes_unapproved(self):
        """Test only approved testimonials are public"""
        approved = TestDataFactory.create_testimonial(status='approved')
        TestDataFactory.create_testimonial(status='pending')
        TestDataFactory.create_testimonial(status='rejected')
        response = self.client.get('/api/testimonials/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['id'] for t in response.data], [approved.id])


class TestimonialModerationTests(TestCase):
    """Test admin moderation of testimonials"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.testimonial = TestDataFactory.create_testimonial(name='Arjun Mehta')

    def approve_url(self, pk=None):
        return f'/api/admin/testimonials/{pk or self.testimonial.id}/approve/'

    def reject_url(self, pk=None):
        return f'/api/admin/testimonials/{pk or self.testimonial.id}/reject/'

    def delete_url(self, pk=None):
        return f'/api/admin/testimonials/{pk or self.testimonial.id}/'

    def test_customer_forbidden(self):
        """Test customers cannot moderate"""
        self.client.authenticate_user(TestDataFactory.create_user())
        self.assertEqual(self.client.put(self.approve_url()).status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.get('/api/admin/testimonials/').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.client.delete(self.delete_url()).status_code, status.HTTP_403_FORBIDDEN)

    def test_approve_moves_between_lists(self):
        """Test approval shows up in the public and admin lists after commit"""
        public = APIClient()
        self.assertEqual(public.get('/api/testimonials/').data, [])
        pending = self.client.get('/api/admin/testimonials/?status=pending').data
        self.assertEqual([t['id'] for t in pending], [self.testimonial.id])

        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.put(self.approve_url())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')
        self.assertIsNotNone(response.data['moderated_at'])

        self.assertEqual([t['id'] for t in public.get('/api/testimonials/').data], [self.testimonial.id])
        self.assertEqual(self.client.get('/api/admin/testimonials/?status=pending').data, [])
        approved = self.client.get('/api/admin/testimonials/?status=approved').data
        self.assertEqual([t['id'] for t in approved], [self.testimonial.id])

    def test_approve_is_idempotent(self):
        """Test approving twice succeeds and logs once"""
        self.client.put(self.approve_url())
        response = self.client.put(self.approve_url())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')
        self.assertEqual(AuditLog.objects.filter(action='testimonial_approve').count(), 1)

    def test_reject_then_approve_conflicts(self):
        """Test a rejected testimonial cannot be approved"""
        self.assertEqual(self.client.put(self.reject_url()).data['status'], 'rejected')
        response = self.client.put(self.approve_url())
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.testimonial.refresh_from_db()
        self.assertEqual(self.testimonial.status, 'rejected')

    def test_approve_then_reject_conflicts(self):
        """Test an approved testimonial cannot be rejected"""
        moderate_testimonial(self.testimonial, 'approve')
        with self.assertRaises(ModerationConflict):
            moderate_testimonial(self.testimonial, 'reject')

    def test_delete_approved(self):
        """Test moderated testimonials can be deleted, once"""
        self.client.put(self.approve_url())
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.delete(self.delete_url())
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Testimonial.objects.filter(pk=self.testimonial.id).exists())
        self.assertEqual(APIClient().get('/api/testimonials/').data, [])
        self.assertEqual(self.client.delete(self.delete_url()).status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_rejected(self):
        """Test rejected testimonials can be deleted"""
        self.client.put(self.reject_url())
        self.assertEqual(self.client.delete(self.delete_url()).status_code, status.HTTP_204_NO_CONTENT)

    def test_delete_pending_conflicts(self):
        """Test pending testimonials must be moderated before deletion"""
        response = self.client.delete(self.delete_url())
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertTrue(Testimonial.objects.filter(pk=self.testimonial.id).exists())

    def test_unknown_testimonial(self):
        """Test moderating a missing testimonial is 404"""
        self.assertEqual(self.client.put(self.approve_url(9999)).status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_list_status_validation(self):
        """Test unknown status filters are rejected"""
        response = self.client.get('/api/admin/testimonials/?status=archived')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/admin/testimonials/')
        self.assertEqual(len(response.data), 1)
