"""
Request payload and image upload helpers.

Routes accept either JSON or multipart/form-data. Multipart requests carry the
image in ``image_file`` and an optional ``remove_image`` flag.
"""
import os

from flask import current_app, request
from werkzeug.utils import secure_filename

from vet_clinic.exceptions import ValidationError
from .validation import parse_bool

ALLOWED_IMAGE_TYPES = {'image/jpeg', 'image/jpg', 'image/png', 'image/webp'}
ALLOWED_IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp'}

IMAGE_FIELD = 'image_file'
REMOVE_IMAGE_FIELD = 'remove_image'


def is_multipart():
    return bool(request.content_type and 'multipart/form-data' in request.content_type)


def _file_size(file_storage):
    stream = file_storage.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


def validate_image(file_storage):
    """
    Check type and size of an uploaded image before any service call.

    Raises:
        ValidationError: Unsupported type or larger than IMAGE_MAX_BYTES
    """
    ext = os.path.splitext(secure_filename(file_storage.filename or ''))[1].lower()
    mimetype = (file_storage.mimetype or '').lower()
    if mimetype not in ALLOWED_IMAGE_TYPES or ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(
            "Invalid file type. Only JPEG, JPG, PNG, WebP are allowed",
            field=IMAGE_FIELD,
        )

    max_bytes = current_app.config.get('IMAGE_MAX_BYTES', 5 * 1024 * 1024)
    if _file_size(file_storage) > max_bytes:
        raise ValidationError(
            f"File size exceeds {max_bytes // (1024 * 1024)}MB limit",
            field=IMAGE_FIELD,
        )


def read_payload():
    """
    Read fields, image and removal flag from the current request.

    Returns:
        (data, image_file, remove_image). ``image_file`` is None when no file
        was sent; a sent file has already passed ``validate_image``.
    """
    if is_multipart():
        data = request.form.to_dict()
        image_file = request.files.get(IMAGE_FIELD)
        if image_file is not None and not image_file.filename:
            image_file = None
    else:
        body = request.get_json(silent=True)
        if body is not None and not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        data = dict(body or {})
        image_file = None

    remove_image = parse_bool(data.pop(REMOVE_IMAGE_FIELD, None))
    if image_file is not None:
        validate_image(image_file)
    return data, image_file, remove_image
