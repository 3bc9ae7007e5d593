"""
Tests for the contact form
"""
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from .models import ContactMessage


class ContactTests(TestCase):
    """Test contact message submission and admin handling"""

    def test_submit_message(self):
        """Test visitors can send a message"""
        response = APIClient().post('/api/contact/', {
            'name': 'Kavya Rao',
            'email': 'kavya@example.com',
            'message': 'Do you ship custom rings to Singapore?',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['is_read'])
        self.assertEqual(ContactMessage.objects.count(), 1)

    def test_short_message_rejected(self):
        """Test messages under 10 characters are rejected"""
        response = APIClient().post('/api/contact/', {
            'name': 'Kavya', 'email': 'kavya@example.com', 'message': 'Hi there',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('message', response.data)

    def test_admin_list_and_mark_read(self):
        """Test admins list unread messages and mark them read"""
        unread = TestDataFactory.create_contact_message()
        TestDataFactory.create_contact_message(is_read=True)
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())

        self.assertEqual(len(client.get('/api/admin/contact/').data), 2)
        response = client.get('/api/admin/contact/?unread=true')
        self.assertEqual([m['id'] for m in response.data], [unread.id])

        response = client.patch(f'/api/admin/contact/{unread.id}/', {'is_read': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_read'])
        self.assertTrue(AuditLog.objects.filter(action='contact_read', object_id=str(unread.id)).exists())

    def test_customer_cannot_read_messages(self):
        """Test the inbox is admin only"""
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        self.assertEqual(client.get('/api/admin/contact/').status_code, status.HTTP_403_FORBIDDEN)
