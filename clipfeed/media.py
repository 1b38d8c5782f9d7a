import logging
import os
import uuid
from pathlib import Path

from clipfeed.config import settings
from clipfeed.errors import ValidationError

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads"

VIDEO_EXTENSIONS = {".mp4", ".mov", ".webm", ".avi", ".mkv"}
IMAGE_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp"}


def read_upload(upload, extensions, content_type_prefix, max_size, error_message):
    """Validate an UploadFile and return its bytes and lowercased extension."""
    suffix = os.path.splitext(upload.filename or "")[1].lower()
    content_type = upload.content_type or ""
    if suffix not in extensions or not content_type.startswith(content_type_prefix):
        raise ValidationError(error_message)

    data = upload.file.read(max_size + 1)
    if len(data) > max_size:
        raise ValidationError("File is too large")
    if not data:
        raise ValidationError("Uploaded file is empty")
    return data, suffix


class MediaStorage:
    """Stores uploaded media on disk and hands out references to it.

    A reference looks like ``/uploads/videos/<uuid>.mp4``; the core only ever
    keeps the reference and never reads the bytes back.
    """

    def __init__(self, root):
        self.root = Path(root).resolve()

    def path_for(self, ref):
        if not ref.startswith(URL_PREFIX + "/"):
            raise ValueError(f"Not a media reference: {ref}")
        path = (self.root / ref[len(URL_PREFIX) + 1:]).resolve()
        if self.root not in path.parents:
            raise ValueError(f"Media reference escapes the upload directory: {ref}")
        return path

    def store(self, data, folder, suffix=""):
        ref = f"{URL_PREFIX}/{folder}/{uuid.uuid4().hex}{suffix.lower()}"
        path = self.path_for(ref)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Stored %d bytes at %s", len(data), ref)
        return ref

    def owns(self, ref):
        return bool(ref) and ref.startswith(URL_PREFIX + "/")

    def delete(self, ref):
        # Deleting something that is already gone is not an error
        path = self.path_for(ref)
        path.unlink(missing_ok=True)
        logger.info("Deleted media %s", ref)


def get_media():
    return MediaStorage(settings.UPLOAD_DIR)
