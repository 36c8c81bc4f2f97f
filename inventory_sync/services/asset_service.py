# inventory_sync/services/asset_service.py
from typing import Optional
import mimetypes
import uuid

from inventory_sync.core.image_compressor import ImageCompressor
from inventory_sync.db.storage import BlobStore
from inventory_sync.logging_setup import get_logger
from inventory_sync.models import ImageAsset, PendingAsset

logger = get_logger('assets')

DEFAULT_EXTENSION = 'jpg'


class AssetService:
    """Prepares picked images and uploads them to blob storage."""

    def __init__(self, storage: BlobStore, compressor: Optional[ImageCompressor] = None):
        self.storage = storage
        self.compressor = compressor or ImageCompressor()

    def prepare(
        self,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
        max_bytes: Optional[int] = None
    ) -> PendingAsset:
        """Validate and compress a picked image.

        Raises:
            UnsupportedFormat: Not a JPEG, PNG or GIF
            CompressionFailed: Re-encoding failed
        """
        original = ImageAsset(
            filename=filename,
            data=data,
            content_type=content_type or mimetypes.guess_type(filename)[0] or ''
        )
        compressed = self.compressor.compress(original, max_bytes)

        if compressed is original:
            return PendingAsset(original)
        return PendingAsset(original, compressed)

    def build_path(self, asset: ImageAsset) -> str:
        """Random object name keeping the original file extension."""
        extension = asset.extension
        if not extension:
            guessed = mimetypes.guess_extension(asset.content_type or '')
            extension = guessed.lstrip('.') if guessed else DEFAULT_EXTENSION
        return f"{uuid.uuid4()}.{extension}"

    def upload(self, pending: PendingAsset) -> str:
        """Upload the compressed image (or the original when none) and return its public URL.

        Raises:
            StorageError: The upload failed
        """
        asset = pending.upload_candidate
        path = self.build_path(asset)

        self.storage.upload(path, asset.data, asset.content_type)
        url = self.storage.public_url(path)

        logger.info(f"Uploaded {asset.filename} as {path} ({asset.size} bytes)")
        return url
