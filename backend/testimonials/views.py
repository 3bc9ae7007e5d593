from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.core.cache import cache
from django.shortcuts import get_object_or_404
import logging

from .models import Testimonial
from .serializers import TestimonialSerializer
from .services import moderate_testimonial, delete_testimonial, ModerationConflict
from backend.core.cache_utils import TESTIMONIALS_CACHE_TTL, testimonials_public_key, testimonials_admin_key
from backend.core.permissions import IsAdminRole
from backend.core.uploads import save_image_upload
from backend.core.utils import create_audit_log

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([AllowAny])
def testimonial_list_create(request):
    """Approved testimonials, or submit a new one for moderation"""
    if request.method == 'GET':
        cache_key = testimonials_public_key()
        data = cache.get(cache_key)
        if data is None:
            data = TestimonialSerializer(Testimonial.objects.filter(status='approved'), many=True).data
            cache.set(cache_key, data, TESTIMONIALS_CACHE_TTL)
        return Response(data)

    serializer = TestimonialSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    image_urls = list(serializer.validated_data.get('image_urls', []))
    for upload in request.FILES.getlist('images'):
        image_urls.append(save_image_upload(upload, folder='testimonials'))
    owner = request.user if request.user.is_authenticated else None
    testimonial = serializer.save(user=owner, image_urls=image_urls, status='pending')
    logger.info(f"Testimonial {testimonial.id} submitted by {testimonial.name}")
    return Response(TestimonialSerializer(testimonial).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def admin_testimonial_list(request):
    """All testimonials for moderation, optionally filtered by ?status="""
    status_filter = request.query_params.get('status') or None
    valid_statuses = {choice for choice, _ in Testimonial.STATUS_CHOICES}
    if status_filter and status_filter not in valid_statuses:
        return Response({'status': [f"Must be one of: {', '.join(sorted(valid_statuses))}"]},
                        status=status.HTTP_400_BAD_REQUEST)

    cache_key = testimonials_admin_key(status_filter)
    data = cache.get(cache_key)
    if data is None:
        testimonials = Testimonial.objects.all()
        if status_filter:
            testimonials = testimonials.filter(status=status_filter)
        data = TestimonialSerializer(testimonials, many=True).data
        cache.set(cache_key, data, TESTIMONIALS_CACHE_TTL)
    return Response(data)


def _moderate(request, pk, action):
    testimonial = get_object_or_404(Testimonial, pk=pk)
    try:
        changed = moderate_testimonial(testimonial, action)
    except ModerationConflict as e:
        return Response({'detail': str(e)}, status=status.HTTP_409_CONFLICT)
    if changed:
        create_audit_log(request, f'testimonial_{action}', 'Testimonial', testimonial.id,
                         object_name=testimonial.name, changes={'status': testimonial.status})
    return Response(TestimonialSerializer(testimonial).data)


@api_view(['PUT'])
@permission_classes([IsAdminRole])
def admin_testimonial_approve(request, pk):
    """Approve a pending testimonial"""
    return _moderate(request, pk, 'approve')


@api_view(['PUT'])
@permission_classes([IsAdminRole])
def admin_testimonial_reject(request, pk):
    """Reject a pending testimonial"""
    return _moderate(request, pk, 'reject')


@api_view(['DELETE'])
@permission_classes([IsAdminRole])
def admin_testimonial_delete(request, pk):
    """Delete an approved or rejected testimonial"""
    testimonial = get_object_or_404(Testimonial, pk=pk)
    name = testimonial.name
    try:
        delete_testimonial(testimonial)
    except ModerationConflict as e:
        return Response({'detail': str(e)}, status=status.HTTP_409_CONFLICT)
    create_audit_log(request, 'testimonial_delete', 'Testimonial', pk, object_name=name)
    return Response(status=status.HTTP_204_NO_CONTENT)
