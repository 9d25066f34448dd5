import logging
import os
import uuid
from fastapi import UploadFile

from ..config import settings
from ..exceptions import ValidationFailed

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def round_upload_dir(round_id: int) -> str:
    return os.path.join(settings.upload_dir, f"round_{round_id}")


def save_upload_file(upload_file: UploadFile, round_id: int) -> str:
    """Stream an image submission to disk and return where it was written.

    The stored name is random; the extension comes from the declared
    content type, never from the client's filename.
    """
    extension = settings.image_extensions.get(upload_file.content_type)
    if extension is None:
        raise ValidationFailed("Invalid file format")

    target_dir = round_upload_dir(round_id)
    os.makedirs(target_dir, exist_ok=True)
    file_path = os.path.join(target_dir, f"{uuid.uuid4().hex}{extension}")

    written = 0
    with open(file_path, "wb") as out:
        for chunk in iter(lambda: upload_file.file.read(CHUNK_SIZE), b""):
            written += len(chunk)
            if written > settings.max_file_size:
                break
            out.write(chunk)

    if written > settings.max_file_size:
        os.remove(file_path)
        raise ValidationFailed("File too large")

    logger.info(f"Stored {written} byte image for round {round_id}")
    return file_path


def delete_file(file_path: str):
    """Remove a stored image; missing files are ignored"""
    try:
        os.remove(file_path)
    except FileNotFoundError:
        logger.warning(f"Image {file_path} was already gone")
