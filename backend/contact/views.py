from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.shortcuts import get_object_or_404
import logging

from .models import ContactMessage
from .serializers import ContactMessageSerializer, ContactMessageUpdateSerializer
from backend.core.permissions import IsAdminRole
from backend.core.utils import create_audit_log

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def contact_create(request):
    """Submit a contact form message"""
    serializer = ContactMessageSerializer(data=request.data)
    if serializer.is_valid():
        message = serializer.save()
        logger.info(f"Contact message {message.id} received from {message.email}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_contact_list(request):
    """List contact messages, optionally only unread ones (?unread=true)"""
    messages = ContactMessage.objects.all()
    if request.query_params.get('unread') == 'true':
        messages = messages.filter(is_read=False)
    serializer = ContactMessageSerializer(messages, many=True)
    return Response(serializer.data)


@api_view(['PUT', 'PATCH'])
@permission_classes([IsAdminRole])
def admin_contact_detail(request, pk):
    """Mark a contact message read or unread"""
    message = get_object_or_404(ContactMessage, pk=pk)
    serializer = ContactMessageUpdateSerializer(message, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        if message.is_read:
            create_audit_log(request, 'contact_read', 'ContactMessage', message.id, object_name=message.email)
        return Response(ContactMessageSerializer(message).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
