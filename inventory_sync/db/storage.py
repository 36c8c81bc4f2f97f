# inventory_sync/db/storage.py
from abc import ABC, abstractmethod
from pathlib import Path

from inventory_sync.exceptions import StorageError
from inventory_sync.logging_setup import get_logger

logger = get_logger('storage')

CACHE_CONTROL_SECONDS = '3600'


class BlobStore(ABC):
    """Object storage for stock thumbnails."""

    @abstractmethod
    def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Store bytes at path. Existing objects are never overwritten."""
        pass

    @abstractmethod
    def public_url(self, path: str) -> str:
        pass


class SupabaseStorage(BlobStore):
    """Supabase storage bucket."""

    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    def upload(self, path, data, content_type):
        try:
            self.client.storage.from_(self.bucket).upload(
                path=path,
                file=data,
                file_options={
                    'content-type': content_type,
                    'cache-control': CACHE_CONTROL_SECONDS,
                    'upsert': 'false'
                }
            )
        except Exception as e:
            raise StorageError(
                f"Upload of {path} to bucket {self.bucket} failed: {str(e)}",
                details={'bucket': self.bucket, 'path': path}
            )

    def public_url(self, path):
        return self.client.storage.from_(self.bucket).get_public_url(path)


class LocalStorage(BlobStore):
    """Directory-backed store served from a configured base URL."""

    def __init__(self, directory, public_base_url: str):
        self.directory = Path(directory)
        self.public_base_url = public_base_url.rstrip('/')

    def upload(self, path, data, content_type):
        target = self.directory / path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'xb') as blob:
                blob.write(data)
        except FileExistsError:
            raise StorageError(f"Object {path} already exists", details={'path': path})
        except OSError as e:
            raise StorageError(f"Upload of {path} failed: {str(e)}", details={'path': path})

        logger.debug(f"Wrote {len(data)} bytes ({content_type}) to {target}")

    def public_url(self, path):
        return f"{self.public_base_url}/{path}"
