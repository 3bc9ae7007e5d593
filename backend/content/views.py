from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from dataclasses import asdict
import json

from backend.catalog.models import Product
from backend.catalog.serializers import ProductSerializer
from backend.catalog.reconciler import extract_ai_inputs, parse_details
from backend.core.permissions import IsAdminRole
from backend.core.uploads import validate_image_upload
from backend.core.utils import create_audit_log
from .generator import AIInputs, ContentGenerationClient, ContentGenerationError
from .serializers import AIInputsSerializer, RegenerateContentSerializer
from .services import apply_generated_content, store_ai_inputs

INPUT_FIELDS = (
    'product_type', 'metal_type', 'metal_weight', 'metal_type_id', 'primary_gems', 'primary_gems_text',
    'main_stone_type', 'main_stone_weight', 'secondary_stone_type', 'secondary_stone_weight',
    'user_description', 'image_urls', 'other_stone_type', 'other_stone_weight',
)


def _request_payload(request):
    """
    JSON body, or the JSON `payload` field of a multipart request.

    Returns (data, error_response).
    """
    raw = request.data.get('payload') if hasattr(request.data, 'get') else None
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except ValueError:
            return None, Response({'payload': ['Must be a JSON object.']}, status=status.HTTP_400_BAD_REQUEST)
        if not isinstance(data, dict):
            return None, Response({'payload': ['Must be a JSON object.']}, status=status.HTTP_400_BAD_REQUEST)
        return data, None
    return request.data, None


def _uploaded_images(request):
    images = request.FILES.getlist('images')
    for image in images:
        validate_image_upload(image)
    return images


@api_view(['POST'])
@permission_classes([IsAdminRole])
def generate_content(request):
    """Generate product copy from inputs without touching any product"""
    data, error = _request_payload(request)
    if error:
        return error
    serializer = AIInputsSerializer(data=data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    images = _uploaded_images(request)

    try:
        content = ContentGenerationClient().generate(serializer.to_ai_inputs(), images=images)
    except ContentGenerationError as e:
        return Response({'detail': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

    create_audit_log(request, 'content_generate', 'Product', 'new', object_name=content.title)
    return Response(content.to_dict())


@api_view(['POST'])
@permission_classes([IsAdminRole])
def product_regenerate_content(request, pk):
    """
    Regenerate copy for an existing product.

    Without inputs the product's stored AI inputs are reused. `apply`
    writes the content to the product; `store_ai_inputs` keeps the inputs.
    """
    product = get_object_or_404(Product, pk=pk)
    data, error = _request_payload(request)
    if error:
        return error

    if not any(key in data for key in INPUT_FIELDS):
        details, ok = parse_details(product.details)
        stored = extract_ai_inputs(details if ok else {}, product.ai_inputs)
        if not stored:
            return Response({'detail': 'No inputs given and none stored for this product.'},
                            status=status.HTTP_400_BAD_REQUEST)
        data = {
            **asdict(AIInputs.from_payload(stored)),
            'apply': data.get('apply', False),
            'store_ai_inputs': data.get('store_ai_inputs', False),
        }

    serializer = RegenerateContentSerializer(data=data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    inputs = serializer.to_ai_inputs()
    apply = serializer.validated_data['apply']
    keep_inputs = serializer.validated_data['store_ai_inputs']
    images = _uploaded_images(request)

    try:
        content = ContentGenerationClient().generate(inputs, images=images)
    except ContentGenerationError as e:
        return Response({'detail': str(e)}, status=status.HTTP_502_BAD_GATEWAY)

    if apply:
        apply_generated_content(product, content, ai_inputs=inputs if keep_inputs else None)
    elif keep_inputs:
        store_ai_inputs(product, inputs)

    create_audit_log(request, 'content_generate', 'Product', product.id, object_name=product.name,
                     changes={'applied': apply, 'stored_ai_inputs': keep_inputs})
    return Response({
        'content': content.to_dict(),
        'applied': apply,
        'stored_ai_inputs': keep_inputs,
        'product': ProductSerializer(product).data,
    })
