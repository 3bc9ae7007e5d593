"""
Image upload validation and storage

Images are verified with Pillow before anything is written, then saved
through Django's default storage.
"""
import logging
import os
import uuid

from django.conf import settings
from django.core.files.storage import default_storage
from PIL import Image, UnidentifiedImageError
from rest_framework import serializers

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp'}
ALLOWED_IMAGE_FORMATS = {'JPEG', 'PNG', 'GIF', 'WEBP'}
FORMAT_EXTENSIONS = {'JPEG': '.jpg', 'PNG': '.png', 'GIF': '.gif', 'WEBP': '.webp'}


def validate_image_upload(upload):
    """
    Validate an uploaded image file.

    Checks size, extension and the actual image content. Raises
    serializers.ValidationError; returns the detected Pillow format.
    """
    max_size = getattr(settings, 'MAX_IMAGE_UPLOAD_SIZE', 5 * 1024 * 1024)
    if upload.size > max_size:
        raise serializers.ValidationError(f"Image must be {max_size // (1024 * 1024)}MB or smaller.")

    ext = os.path.splitext(upload.name or '')[1].lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise serializers.ValidationError("Only JPG, PNG, GIF and WEBP images are allowed.")

    try:
        image = Image.open(upload)
        image.verify()
        image_format = image.format
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise serializers.ValidationError("Uploaded file is not a valid image.")
    finally:
        upload.seek(0)

    if image_format not in ALLOWED_IMAGE_FORMATS:
        raise serializers.ValidationError("Only JPG, PNG, GIF and WEBP images are allowed.")
    return image_format


def save_image_upload(upload, folder='uploads'):
    """Validate and store an uploaded image, returning its public URL"""
    image_format = validate_image_upload(upload)
    name = f"{folder}/{uuid.uuid4().hex}{FORMAT_EXTENSIONS[image_format]}"
    stored_name = default_storage.save(name, upload)
    logger.info(f"Stored uploaded image {upload.name} as {stored_name}")
    return default_storage.url(stored_name)


class ImageUploadSerializer(serializers.Serializer):
    image = serializers.FileField()

    def validate_image(self, value):
        validate_image_upload(value)
        return value
