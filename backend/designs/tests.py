"""
Tests for design and customization request threads
"""
import shutil
import tempfile

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import (
    CustomDesignRequest, CustomizationRequest,
    DesignRequestComment, CustomizationComment, DesignPayment,
)
from .services import StatusTransitionError, update_request


class MediaRootMixin:
    """Store uploads in a throwaway MEDIA_ROOT"""

    def setUp(self):
        super().setUp()
        self.media_root = tempfile.mkdtemp()
        self.media_override = override_settings(MEDIA_ROOT=self.media_root)
        self.media_override.enable()

    def tearDown(self):
        self.media_override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)
        super().tearDown()


class CustomDesignSubmissionTests(MediaRootMixin, TestCase):
    """Test submitting custom design requests"""

    def setUp(self):
        super().setUp()
        cache.clear()
        self.client = AuthenticatedAPIClient()

    def test_anonymous_submission(self):
        """Test guests can submit a design request"""
        response = self.client.post('/api/custom-design/', {
            'full_name': 'Meera Shah',
            'email': 'meera@example.com',
            'metal_type': '18K Rose Gold',
            'primary_stones': ['Diamond', 'Emerald'],
            'notes': 'Vintage inspired engagement ring',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['user'])
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['primary_stones'], ['Diamond', 'Emerald'])

    def test_submission_with_images(self):
        """Test reference images are stored and the first becomes the main image"""
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.post('/api/custom-design/', {
            'full_name': 'Meera Shah',
            'email': 'meera@example.com',
            'metal_type': 'Platinum',
            'images': [TestDataFactory.create_image_file('a.png'), TestDataFactory.create_image_file('b.png')],
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user'], user.id)
        self.assertEqual(len(response.data['image_urls']), 2)
        self.assertEqual(response.data['image_url'], response.data['image_urls'][0])

    def test_submission_rejects_bad_image(self):
        """Test a non-image upload fails the whole submission"""
        response = self.client.post('/api/custom-design/', {
            'full_name': 'Meera Shah',
            'email': 'meera@example.com',
            'metal_type': 'Platinum',
            'images': [SimpleUploadedFile('fake.png', b'not an image', content_type='image/png')],
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(CustomDesignRequest.objects.count(), 0)

    def test_missing_required_fields(self):
        """Test name, email and metal are required"""
        response = self.client.post('/api/custom-design/', {'notes': 'Something nice'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('full_name', response.data)
        self.assertIn('email', response.data)

    def test_user_list_only_shows_own_requests(self):
        """Test the user list is scoped to the owner"""
        owner = TestDataFactory.create_user()
        mine = TestDataFactory.create_design_request(user=owner)
        TestDataFactory.create_design_request(user=TestDataFactory.create_user())
        self.client.authenticate_user(owner)
        response = self.client.get('/api/custom-designs/user/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r['id'] for r in response.data], [mine.id])

    def test_admin_list(self):
        """Test only admins see every request"""
        TestDataFactory.create_design_request()
        TestDataFactory.create_design_request(status='quoted', quoted_price=100000)

        self.client.authenticate_user(TestDataFactory.create_user())
        self.assertEqual(self.client.get('/api/custom-designs/').status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/custom-designs/')
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/custom-designs/?status=quoted')
        self.assertEqual(len(response.data), 1)


class CommentThreadTests(MediaRootMixin, TestCase):
    """Test posting comments on request threads"""

    def setUp(self):
        super().setUp()
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.owner = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.design = TestDataFactory.create_design_request(user=self.owner)
        self.url = f'/api/custom-designs/{self.design.id}/comments/'

    def test_empty_comment_rejected(self):
        """Test a comment with no text and no image writes nothing"""
        self.client.authenticate_user(self.owner)
        for payload in ({}, {'content': ''}, {'content': '   \n '}):
            response = self.client.post(self.url, payload, format='multipart')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertIn('content', response.data)
        self.assertEqual(DesignRequestComment.objects.count(), 0)

    def test_owner_text_comment(self):
        """Test the owner can comment with text only"""
        self.client.authenticate_user(self.owner)
        response = self.client.post(self.url, {'content': '  Can the band be thinner?  '}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['content'], 'Can the band be thinner?')
        self.assertFalse(response.data['is_admin'])
        self.assertEqual(response.data['created_by'], self.owner.username)
        self.assertEqual(response.data['author_label'], self.owner.username)

    def test_image_only_comment(self):
        """Test an image without text is a valid comment"""
        self.client.authenticate_user(self.owner)
        response = self.client.post(self.url, {'image': TestDataFactory.create_image_file('sketch.png')},
                                    format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['content'], '')
        self.assertTrue(response.data['image_url'].startswith('/media/comments/'))

    def test_invalid_image_rejected(self):
        """Test a non-image attachment is refused"""
        self.client.authenticate_user(self.owner)
        response = self.client.post(self.url, {
            'content': 'See attached',
            'image': SimpleUploadedFile('notes.txt', b'plain text', content_type='text/plain'),
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(DesignRequestComment.objects.count(), 0)

    def test_admin_comment_flagged(self):
        """Test admin comments carry the admin flag and team label"""
        self.client.authenticate_user(self.admin)
        response = self.client.post(self.url, {'content': 'Here is the first CAD draft.'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['is_admin'])
        self.assertEqual(response.data['author_label'], 'Jewelry Team')
        self.assertTrue(AuditLog.objects.filter(action='comment_add', object_id=self.design.id).exists())

    def test_other_customer_forbidden(self):
        """Test customers cannot comment on or view other threads"""
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post(self.url, {'content': 'Hello'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.get(f'/api/custom-designs/{self.design.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_anonymous_forbidden(self):
        """Test commenting requires login"""
        response = self.client.post(self.url, {'content': 'Hello'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_thread_order(self):
        """Test comments are returned oldest first"""
        self.client.authenticate_user(self.owner)
        for content in ('first', 'second', 'third'):
            with self.captureOnCommitCallbacks(execute=True):
                self.client.post(self.url, {'content': content}, format='multipart')
        response = self.client.get(f'/api/custom-designs/{self.design.id}/')
        self.assertEqual([c['content'] for c in response.data['comments']], ['first', 'second', 'third'])

    def test_cached_thread_refreshed_after_commit(self):
        """Test the cached thread is only dropped once the comment commits"""
        self.client.authenticate_user(self.owner)
        detail_url = f'/api/custom-designs/{self.design.id}/'
        self.assertEqual(self.client.get(detail_url).data['comments'], [])

        with self.captureOnCommitCallbacks() as callbacks:
            self.client.post(self.url, {'content': 'Any update?'}, format='multipart')
        # Not committed yet: cached thread still served
        self.assertEqual(self.client.get(detail_url).data['comments'], [])

        for callback in callbacks:
            callback()
        comments = self.client.get(detail_url).data['comments']
        self.assertEqual([c['content'] for c in comments], ['Any update?'])

    def test_user_list_refreshed_after_comment(self):
        """Test the owner's cached list picks up the new comment count"""
        self.client.authenticate_user(self.owner)
        self.assertEqual(self.client.get('/api/custom-designs/user/').data[0]['comments_count'], 0)
        with self.captureOnCommitCallbacks(execute=True):
            self.client.post(self.url, {'content': 'Hi'}, format='multipart')
        self.assertEqual(self.client.get('/api/custom-designs/user/').data[0]['comments_count'], 1)

    def test_customization_thread(self):
        """Test customization requests share the comment behavior"""
        customization = TestDataFactory.create_customization_request(user=self.owner)
        url = f'/api/customization-requests/{customization.id}/comments/'
        self.client.authenticate_user(self.owner)
        self.assertEqual(self.client.post(url, {}, format='multipart').status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(url, {'content': 'Can it be 14K instead?'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(CustomizationComment.objects.filter(request=customization).count(), 1)
        self.assertEqual(DesignRequestComment.objects.count(), 0)


class RequestUpdateTests(TestCase):
    """Test admin status and quote updates"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.owner = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client.authenticate_user(self.admin)
        self.design = TestDataFactory.create_design_request(user=self.owner)
        self.url = f'/api/custom-designs/{self.design.id}/'

    def test_quote_moves_pending_to_quoted(self):
        """Test setting a price on a pending request quotes it"""
        response = self.client.put(self.url, {'quoted_price': 185000}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'quoted')
        self.assertEqual(response.data['quoted_price'], 185000)
        self.assertTrue(AuditLog.objects.filter(action='quote', object_id=self.design.id).exists())

    def test_quote_requires_price(self):
        """Test quoting without a price is refused"""
        response = self.client.put(self.url, {'status': 'quoted'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_disallowed_transition(self):
        """Test skipping straight to completed is a conflict"""
        response = self.client.put(self.url, {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.design.refresh_from_db()
        self.assertEqual(self.design.status, 'pending')

    def test_full_lifecycle(self):
        """Test pending -> quoted -> approved -> completed"""
        self.client.put(self.url, {'quoted_price': 120000}, format='json')
        self.assertEqual(self.client.put(self.url, {'status': 'approved'}, format='json').data['status'], 'approved')
        self.assertEqual(self.client.put(self.url, {'status': 'completed'}, format='json').data['status'], 'completed')
        response = self.client.put(self.url, {'status': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_rejected_is_terminal(self):
        """Test nothing leaves the rejected state"""
        update_request(self.design, status='rejected')
        with self.assertRaises(StatusTransitionError):
            update_request(self.design, status='approved')
        self.assertEqual(update_request(self.design, status='rejected'), {})

    def test_cad_image_counts_iterations(self):
        """Test each new CAD preview counts as an iteration"""
        self.client.put(self.url, {'cad_image_url': '/media/cad/v1.png'}, format='json')
        self.client.put(self.url, {'cad_image_url': '/media/cad/v1.png'}, format='json')
        response = self.client.put(self.url, {'cad_image_url': '/media/cad/v2.png'}, format='json')
        self.assertEqual(response.data['iterations_count'], 2)

    def test_customer_cannot_update(self):
        """Test only admins change status"""
        self.client.authenticate_user(self.owner)
        response = self.client.put(self.url, {'status': 'approved'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_empty_update(self):
        """Test an update with no fields is rejected"""
        response = self.client.put(self.url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_refreshes_owner_view(self):
        """Test the owner's cached thread shows the new status after commit"""
        owner_client = AuthenticatedAPIClient().authenticate_user(self.owner)
        self.assertEqual(owner_client.get(self.url).data['status'], 'pending')
        with self.captureOnCommitCallbacks(execute=True):
            self.client.put(self.url, {'quoted_price': 99000}, format='json')
        self.assertEqual(owner_client.get(self.url).data['status'], 'quoted')


class PaymentTests(TestCase):
    """Test recording payments against design requests"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.owner = TestDataFactory.create_user()
        self.design = TestDataFactory.create_design_request(user=self.owner)
        self.url = f'/api/custom-designs/{self.design.id}/payments/'

    def test_customer_payment_stays_pending(self):
        """Test customer submitted payments are never self-confirmed"""
        self.client.authenticate_user(self.owner)
        response = self.client.post(self.url, {
            'amount': 5000, 'payment_type': 'consultation_fee', 'status': 'completed',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.design.refresh_from_db()
        self.assertFalse(self.design.consultation_fee_paid)

    def test_admin_confirms_consultation_fee(self):
        """Test a completed consultation fee marks the request paid"""
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.post(self.url, {
            'amount': 5000, 'payment_type': 'consultation_fee', 'status': 'completed',
            'payment_method': 'upi', 'transaction_id': 'TXN-1001',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.design.refresh_from_db()
        self.assertTrue(self.design.consultation_fee_paid)
        self.assertEqual(DesignPayment.objects.get().transaction_id, 'TXN-1001')

    def test_invalid_amount(self):
        """Test zero amounts are rejected"""
        self.client.authenticate_user(self.owner)
        response = self.client.post(self.url, {'amount': 0, 'payment_type': 'deposit'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_customer_forbidden(self):
        """Test payments can only be recorded by the owner or an admin"""
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post(self.url, {'amount': 5000, 'payment_type': 'deposit'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_payments_listed_on_detail(self):
        """Test the detail view includes recorded payments"""
        self.client.authenticate_user(self.owner)
        with self.captureOnCommitCallbacks(execute=True):
            self.client.post(self.url, {'amount': 20000, 'payment_type': 'deposit'}, format='json')
        response = self.client.get(f'/api/custom-designs/{self.design.id}/')
        self.assertEqual([p['amount'] for p in response.data['payments']], [20000])


class CustomizationRequestTests(TestCase):
    """Test customization request endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.customer = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(name='Halo Ring')

    def test_submit(self):
        """Test a logged-in customer can request a customization"""
        self.client.authenticate_user(self.customer)
        response = self.client.post('/api/customization-requests/', {
            'product': self.product.id,
            'name': 'Ravi Kumar',
            'email': 'ravi@example.com',
            'customization_details': 'Swap the centre stone for a sapphire',
            'preferred_stones': ['Sapphire'],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user'], self.customer.id)
        self.assertEqual(response.data['product_name'], 'Halo Ring')

    def test_submit_requires_login(self):
        """Test guests cannot request customizations"""
        response = self.client.post('/api/customization-requests/', {
            'product': self.product.id, 'name': 'Ravi', 'email': 'ravi@example.com',
            'customization_details': 'Bigger stone',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_list_admin_only(self):
        """Test only admins list every customization request"""
        TestDataFactory.create_customization_request(user=self.customer, product=self.product)
        self.client.authenticate_user(self.customer)
        self.assertEqual(self.client.get('/api/customization-requests/').status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(len(self.client.get('/api/customization-requests/user/').data), 1)

        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/customization-requests/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_quote_customization(self):
        """Test admins can quote a customization request"""
        customization = TestDataFactory.create_customization_request(user=self.customer, product=self.product)
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.put(f'/api/customization-requests/{customization.id}/',
                                   {'quoted_price': 45000}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'quoted')
        customization.refresh_from_db()
        self.assertEqual(customization.quoted_price, 45000)
        self.assertEqual(CustomizationRequest.objects.get(pk=customization.id).status, 'quoted')
