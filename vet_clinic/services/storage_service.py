"""
Image Storage Service
Uploads and removes profile and pet images on Cloudinary
"""
import logging
import os
import re
from typing import Optional
from urllib.parse import urlparse

import cloudinary
import cloudinary.uploader

from vet_clinic.exceptions import UploadError

logger = logging.getLogger(__name__)

_VERSION_SEGMENT = re.compile(r'^v\d+$')


def public_id_from_url(locator: Optional[str]) -> Optional[str]:
    """
    Recover the Cloudinary public id from a delivery URL.

    ``https://res.cloudinary.com/demo/image/upload/v1712/vet-clinic/users/abc.jpg``
    maps to ``vet-clinic/users/abc``. When a ``v<digits>`` version segment is
    present, it and everything before it (transformations included) are
    dropped. Without one the whole path after ``upload/`` is the id, since a
    transformation cannot be told apart from a folder name there.

    Returns:
        The public id, or None when the locator is not a Cloudinary upload URL.
    """
    if not locator:
        return None

    path = urlparse(locator).path
    marker = '/upload/'
    if marker not in path:
        return None

    segments = [s for s in path.split(marker, 1)[1].split('/') if s]
    for index, segment in enumerate(segments):
        if _VERSION_SEGMENT.match(segment):
            segments = segments[index + 1:]
            break

    if not segments:
        return None

    public_id = '/'.join(segments)
    return os.path.splitext(public_id)[0]


class ImageStore:
    """
    Process-wide Cloudinary client.

    Created once, bound to the app in ``create_app`` via ``init_app`` and
    handed to the services that manage images.
    """

    def __init__(self, app=None):
        self.configured = False
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        cloud_name = app.config.get('CLOUDINARY_CLOUD_NAME')
        if cloud_name:
            cloudinary.config(
                cloud_name=cloud_name,
                api_key=app.config.get('CLOUDINARY_API_KEY'),
                api_secret=app.config.get('CLOUDINARY_API_SECRET'),
                secure=True,
            )
            self.configured = True
        else:
            logger.warning("Cloudinary not configured. Image uploads will fail.")
        app.extensions['image_store'] = self

    def upload(self, file, folder: str, transformation=None) -> str:
        """
        Upload an image and return its secure URL (the locator).

        Args:
            file: File-like object (werkzeug FileStorage, BytesIO) or a local path
            folder: Cloudinary folder, e.g. ``vet-clinic/users``
            transformation: Optional Cloudinary transformation applied on upload

        Raises:
            UploadError: Provider rejected the upload or could not be reached
        """
        if not self.configured:
            raise UploadError("Image storage is not configured")

        options = {'folder': folder, 'resource_type': 'image'}
        if transformation:
            options['transformation'] = transformation

        try:
            result = cloudinary.uploader.upload(file, **options)
        except Exception as e:
            logger.error("Image upload to '%s' failed: %s", folder, e)
            raise UploadError("Failed to upload image", original_error=e)

        locator = result.get('secure_url') if result else None
        if not locator:
            raise UploadError("Image storage returned no URL", details={'folder': folder})

        logger.info("Uploaded image %s", result.get('public_id'))
        return locator

    def delete(self, locator: Optional[str]) -> bool:
        """
        Remove a stored image. Best-effort: failures are logged, never raised.

        Returns:
            True if the provider confirmed the deletion (or the image was already gone).
        """
        public_id = public_id_from_url(locator)
        if not public_id:
            logger.warning("Cannot derive public id from image locator %r", locator)
            return False

        try:
            result = cloudinary.uploader.destroy(public_id, invalidate=True)
        except Exception as e:
            logger.warning("Failed to delete image %s: %s", public_id, e)
            return False

        outcome = (result or {}).get('result')
        if outcome not in ('ok', 'not found'):
            logger.warning("Image store refused deletion of %s: %s", public_id, outcome)
            return False
        return True


# Shared instance, bound in create_app
image_store = ImageStore()
