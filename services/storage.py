"""
Photo uploads to the Supabase `uploads` bucket.
"""
import logging
import mimetypes
import os
import time
from io import BytesIO

from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from config import UPLOAD_BUCKET
from services.errors import ValidationError
from services.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


def read_image_upload(file):
    """Validate an uploaded FileStorage and return (bytes, mime_type, extension).

    Rejects anything whose declared content type is not an image, or whose
    bytes Pillow cannot identify as one. The bytes are passed through untouched.
    """
    if file is None or not file.filename:
        raise ValidationError('No image selected')

    mime_type = (file.mimetype or '').lower()
    if not mime_type.startswith('image/'):
        raise ValidationError('Please upload an image file')

    data = file.read()
    if not data:
        raise ValidationError('Uploaded file is empty')

    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
    except Image.DecompressionBombError as e:
        raise ValidationError('Image is too large') from e
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValidationError('Please upload an image file') from e

    extension = os.path.splitext(secure_filename(file.filename))[1].lower()
    if not extension:
        extension = mimetypes.guess_extension(mime_type) or '.jpg'

    return data, mime_type, extension


class ImageStorage:
    def __init__(self, client=None, bucket=UPLOAD_BUCKET):
        self.client = client or SupabaseClient()
        self.bucket = bucket

    def object_path(self, user, extension):
        return f'{user.user_id}/{int(time.time() * 1000)}{extension}'

    def upload(self, user, file):
        """Store an uploaded photo for user and return its public URL."""
        data, mime_type, extension = read_image_upload(file)
        path = self.object_path(user, extension)

        self.client.request(
            'POST', self.client.storage_url(self.bucket, path),
            user=user,
            headers=self.client.headers(user.access_token, **{'Content-Type': mime_type}),
            data=data,
        )
        logger.info('Uploaded %s (%d bytes) for user %s', path, len(data), user.user_id)

        return self.client.public_object_url(self.bucket, path)
