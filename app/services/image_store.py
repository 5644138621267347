# app/services/image_store.py
import logging
import os
import uuid
from io import BytesIO
from typing import List, Optional, Protocol, Sequence, Tuple

from azure.storage.blob import BlobServiceClient, ContentSettings
from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from app.core.config import Settings
from app.core.errors import UpstreamFailure

logger = logging.getLogger(__name__)

# (filename, content_type, bytes)
ImageUpload = Tuple[str, Optional[str], bytes]


class ImageStore(Protocol):
    def upload(self, data: bytes, blob_name: str, content_type: Optional[str] = None) -> str:
        ...


class AzureImageStore:
    """Azure Blob container holding listing photos; returns public blob URLs."""

    def __init__(self, connection_string: str, container: str):
        self.container = container
        self.client = BlobServiceClient.from_connection_string(connection_string)

    def ensure_container(self) -> None:
        try:
            self.client.create_container(self.container)
        except Exception as e:
            # already exists is the common case
            logger.debug("create_container(%s) skipped: %s", self.container, e)

    def upload(self, data: bytes, blob_name: str, content_type: Optional[str] = None) -> str:
        blob_client = self.client.get_blob_client(container=self.container, blob=blob_name)
        content_settings = ContentSettings(content_type=content_type) if content_type else None
        try:
            blob_client.upload_blob(data, overwrite=True, content_settings=content_settings)
        except Exception as e:
            raise UpstreamFailure(f"image_upload_failed: {e}")
        return blob_client.url


def build_image_store(settings: Settings) -> Optional[ImageStore]:
    if not settings.AZURE_STORAGE_CONNECTION_STRING or not settings.AZURE_CONTAINER_NAME:
        logger.warning("blob storage not configured; listing images will be dropped")
        return None
    store = AzureImageStore(settings.AZURE_STORAGE_CONNECTION_STRING, settings.AZURE_CONTAINER_NAME)
    store.ensure_container()
    return store


def is_image(data: bytes) -> bool:
    if not data:
        return False
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
        return True
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError):
        return False


def blob_name_for(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    return f"listings/{uuid.uuid4().hex}{ext}"


async def upload_listing_images(store: Optional[ImageStore], files: Sequence[ImageUpload]) -> List[str]:
    """Upload files one by one, in order.

    A file that is not an image or fails to upload is logged and skipped;
    the caller gets the URLs of the uploads that succeeded.
    """
    if not files:
        return []
    if store is None:
        logger.warning("dropping %d listing image(s): no image store", len(files))
        return []

    urls: List[str] = []
    for filename, content_type, data in files:
        if not is_image(data):
            logger.warning("skipping %r: not a readable image", filename)
            continue
        try:
            url = await run_in_threadpool(store.upload, data, blob_name_for(filename), content_type)
        except UpstreamFailure as e:
            logger.warning("skipping %r: %s", filename, e.detail)
            continue
        urls.append(url)
    return urls
