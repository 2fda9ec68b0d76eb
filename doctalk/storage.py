# doctalk/storage.py
import io
import logging
import threading
from typing import Optional
from uuid import uuid4

from minio import Minio
from minio.error import S3Error

from doctalk.config import Settings
from doctalk.errors import UploadError

logger = logging.getLogger(__name__)


class ObjectStoreUploader:
    """
    Streams in-memory file buffers to a MinIO / S3-compatible bucket.

    Nothing is written to local disk. Every call creates a new object under
    ``<namespace>/<uuid>.pdf`` so identical content never collides, and the
    returned URL always refers to a write the store acknowledged.
    """

    def __init__(self, settings: Settings, client: Optional[Minio] = None):
        self.settings = settings
        self.bucket = settings.minio_bucket
        self._client = client
        self._lock = threading.Lock()
        self._bucket_lock = threading.Lock()
        self._bucket_ready = False

    @property
    def client(self) -> Minio:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = Minio(
                        self.settings.minio_endpoint,
                        access_key=self.settings.minio_access_key,
                        secret_key=self.settings.minio_secret_key,
                        secure=self.settings.minio_secure,
                    )
        return self._client

    def _ensure_bucket(self):
        if self._bucket_ready:
            return
        with self._bucket_lock:
            if self._bucket_ready:
                return
            client = self.client
            if not client.bucket_exists(self.bucket):
                try:
                    client.make_bucket(self.bucket)
                    logger.info("Created object store bucket %s", self.bucket)
                except S3Error as e:
                    # another process created our bucket between the check and the create
                    if e.code != "BucketAlreadyOwnedByYou":
                        raise
                    logger.info("Bucket %s already created elsewhere", self.bucket)
            self._bucket_ready = True

    def public_url(self, object_name: str) -> str:
        base = self.settings.storage_public_url
        if not base:
            scheme = "https" if self.settings.minio_secure else "http"
            base = f"{scheme}://{self.settings.minio_endpoint}"
        return f"{base.rstrip('/')}/{self.bucket}/{object_name}"

    def upload(self, data: bytes, namespace: str, content_type: str = "application/pdf") -> str:
        """
        Upload ``data`` into ``namespace`` and return its public URL.

        Blocking; callers on the event loop should run it in a thread.
        Raises UploadError on any failure, including a write that comes back
        without an ETag.
        """
        object_name = f"{namespace.strip('/')}/{uuid4().hex}.pdf" if namespace else f"{uuid4().hex}.pdf"
        try:
            self._ensure_bucket()
            result = self.client.put_object(
                self.bucket,
                object_name,
                io.BytesIO(data),
                length=len(data),
                content_type=content_type,
            )
        except Exception as e:
            logger.exception("Upload of %s to bucket %s failed", object_name, self.bucket)
            raise UploadError(f"File storage failed: {e}") from e

        if result is None or not getattr(result, "etag", None):
            logger.error("Object store did not confirm write of %s/%s", self.bucket, object_name)
            raise UploadError("File storage failed: upload was not confirmed")

        url = self.public_url(object_name)
        logger.info("Stored %d bytes at %s", len(data), url)
        return url
