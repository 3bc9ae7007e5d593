from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.core.cache import cache
from django.db import transaction
from django.shortcuts import get_object_or_404
import logging

from .models import CustomDesignRequest, CustomizationRequest
from .serializers import (
    CustomDesignRequestSerializer, CustomDesignRequestDetailSerializer,
    CustomizationRequestSerializer, CustomizationRequestDetailSerializer,
    CommentSerializer, CommentCreateSerializer, RequestUpdateSerializer,
    DesignPaymentSerializer,
)
from .services import (
    submit_comment, update_request, record_payment, schedule_invalidation,
    StatusTransitionError,
)
from backend.core.cache_utils import (
    REQUEST_CACHE_TTL, CUSTOM_DESIGN, CUSTOMIZATION,
    request_detail_key, request_user_list_key,
)
from backend.core.permissions import IsAdminRole, is_owner_or_admin
from backend.core.uploads import save_image_upload
from backend.core.utils import create_audit_log

logger = logging.getLogger(__name__)

FORBIDDEN = {'detail': 'You do not have access to this request.'}


# Shared request-thread helpers
def _thread_detail(request, model, serializer_class, kind, pk):
    """Cached request with its comment thread; owner or admin only"""
    cache_key = request_detail_key(kind, pk)
    data = cache.get(cache_key)
    if data is None:
        request_obj = get_object_or_404(model.objects.prefetch_related('comments'), pk=pk)
        data = serializer_class(request_obj).data
        cache.set(cache_key, data, REQUEST_CACHE_TTL)
    if not is_owner_or_admin(request.user, data['user']):
        return Response(FORBIDDEN, status=status.HTTP_403_FORBIDDEN)
    return Response(data)


def _thread_update(request, model, serializer_class, pk):
    """Admin status/quote update"""
    request_obj = get_object_or_404(model, pk=pk)
    serializer = RequestUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        changes = update_request(request_obj, **serializer.validated_data)
    except StatusTransitionError as e:
        return Response({'detail': str(e)}, status=status.HTTP_409_CONFLICT)
    if changes:
        action = 'quote' if 'quoted_price' in changes else 'status_change'
        create_audit_log(request, action, model.__name__, request_obj.id, changes=changes)
    return Response(serializer_class(request_obj).data)


def _thread_comment(request, model, pk):
    """Append a comment (multipart: content, image)"""
    request_obj = get_object_or_404(model, pk=pk)
    if not is_owner_or_admin(request.user, request_obj.user_id):
        return Response(FORBIDDEN, status=status.HTTP_403_FORBIDDEN)
    serializer = CommentCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    comment = submit_comment(request_obj, request.user, **serializer.validated_data)
    if comment.is_admin:
        create_audit_log(request, 'comment_add', model.__name__, request_obj.id,
                         changes={'comment_id': comment.id})
    return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)


def _user_list(request, model, serializer_class, kind):
    """Cached list of the current user's requests"""
    cache_key = request_user_list_key(kind, request.user.id)
    data = cache.get(cache_key)
    if data is None:
        requests_qs = model.objects.filter(user=request.user).prefetch_related('comments')
        data = serializer_class(requests_qs, many=True).data
        cache.set(cache_key, data, REQUEST_CACHE_TTL)
    return Response(data)


def _admin_list(request, model, serializer_class):
    requests_qs = model.objects.select_related('user').prefetch_related('comments')
    status_filter = request.query_params.get('status')
    if status_filter:
        requests_qs = requests_qs.filter(status=status_filter)
    return Response(serializer_class(requests_qs, many=True).data)


# Custom design request views
@api_view(['POST'])
@permission_classes([AllowAny])
def custom_design_create(request):
    """Submit a custom design request with optional reference images (field: images)"""
    serializer = CustomDesignRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    image_urls = list(serializer.validated_data.get('image_urls', []))
    for upload in request.FILES.getlist('images'):
        image_urls.append(save_image_upload(upload, folder='designs'))
    image_url = serializer.validated_data.get('image_url') or (image_urls[0] if image_urls else '')

    owner = request.user if request.user.is_authenticated else None
    with transaction.atomic():
        design = serializer.save(user=owner, image_url=image_url, image_urls=image_urls)
        schedule_invalidation(design)
    logger.info(f"Custom design request {design.id} submitted by {design.email}")
    return Response(CustomDesignRequestSerializer(design).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def custom_design_list(request):
    """All custom design requests (admin)"""
    return _admin_list(request, CustomDesignRequest, CustomDesignRequestSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def custom_design_user_list(request):
    """Current user's custom design requests"""
    return _user_list(request, CustomDesignRequest, CustomDesignRequestSerializer, CUSTOM_DESIGN)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def custom_design_detail(request, pk):
    """Get a design request with comments, or update it (admin)"""
    if request.method == 'GET':
        return _thread_detail(request, CustomDesignRequest, CustomDesignRequestDetailSerializer, CUSTOM_DESIGN, pk)
    if not request.user.is_admin_role:
        return Response({'detail': 'Admin access required.'}, status=status.HTTP_403_FORBIDDEN)
    return _thread_update(request, CustomDesignRequest, CustomDesignRequestDetailSerializer, pk)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def custom_design_comments(request, pk):
    """Add a comment to a design request"""
    return _thread_comment(request, CustomDesignRequest, pk)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def custom_design_payments(request, pk):
    """Record a payment against a design request"""
    design = get_object_or_404(CustomDesignRequest, pk=pk)
    if not is_owner_or_admin(request.user, design.user_id):
        return Response(FORBIDDEN, status=status.HTTP_403_FORBIDDEN)
    serializer = DesignPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    # Only admins confirm payments; customer submissions stay pending
    payment_status = data.get('status', 'pending') if request.user.is_admin_role else 'pending'
    payment = record_payment(
        design, request.user,
        amount=data['amount'],
        payment_type=data['payment_type'],
        payment_method=data.get('payment_method', ''),
        transaction_id=data.get('transaction_id', ''),
        status=payment_status,
    )
    create_audit_log(request, 'payment_record', 'CustomDesignRequest', design.id,
                     changes={'payment_id': payment.id, 'amount': payment.amount, 'status': payment.status})
    return Response(DesignPaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


# Customization request views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customization_request_list_create(request):
    """List all customization requests (admin) or submit one"""
    if request.method == 'GET':
        if not request.user.is_admin_role:
            return Response({'detail': 'Admin access required.'}, status=status.HTTP_403_FORBIDDEN)
        return _admin_list(request, CustomizationRequest, CustomizationRequestSerializer)

    serializer = CustomizationRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    with transaction.atomic():
        customization = serializer.save(user=request.user)
        schedule_invalidation(customization)
    logger.info(f"Customization request {customization.id} submitted by {request.user.username}")
    return Response(CustomizationRequestSerializer(customization).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customization_request_user_list(request):
    """Current user's customization requests"""
    return _user_list(request, CustomizationRequest, CustomizationRequestSerializer, CUSTOMIZATION)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def customization_request_detail(request, pk):
    """Get a customization request with comments, or update it (admin)"""
    if request.method == 'GET':
        return _thread_detail(request, CustomizationRequest, CustomizationRequestDetailSerializer, CUSTOMIZATION, pk)
    if not request.user.is_admin_role:
        return Response({'detail': 'Admin access required.'}, status=status.HTTP_403_FORBIDDEN)
    return _thread_update(request, CustomizationRequest, CustomizationRequestDetailSerializer, pk)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def customization_request_comments(request, pk):
    """Add a comment to a customization request"""
    return _thread_comment(request, CustomizationRequest, pk)
