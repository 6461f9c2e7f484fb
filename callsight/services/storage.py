"""Durable storage for uploaded call recordings. The returned URL must be reachable by the transcription provider."""
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from callsight.core.config import Settings
from callsight.services.errors import StorageError

logger = logging.getLogger(__name__)


@dataclass
class StoredArtifact:
    key: str
    url: str
    size: int
    content_type: str


class ArtifactStorage(Protocol):
    def save(self, key: str, content: bytes, content_type: str) -> StoredArtifact: ...


def build_artifact_key(user_id: int, filename: str | None) -> str:
    """<user_id>/<uuid4>.<ext>; the original name is never part of the key."""
    ext = filename.rsplit(".", 1)[-1].lower() if filename and "." in filename else "bin"
    return f"{user_id}/{uuid.uuid4()}.{ext}"


class LocalArtifactStorage:
    """Writes under a directory served at public_base_url (development only)."""

    def __init__(self, root: str | Path, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def save(self, key: str, content: bytes, content_type: str) -> StoredArtifact:
        path = self.root / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            logger.error("Local artifact write failed for %s: %s", key, e)
            raise StorageError(f"Could not store the uploaded file: {e}") from e
        return StoredArtifact(key=key, url=f"{self.public_base_url}/{key}", size=len(content), content_type=content_type)


class R2ArtifactStorage:
    """Cloudflare R2 through the S3 API; boto3 client created on first use."""

    def __init__(self, *, endpoint_url: str, bucket: str, public_endpoint: str,
                 access_key_id: str, secret_access_key: str):
        self.endpoint_url = endpoint_url
        self.bucket = bucket
        self.public_endpoint = public_endpoint.rstrip("/")
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self._client = None

    def _get_client(self):
        if self._client is not None:
            return self._client
        import boto3
        from botocore.config import Config

        self._client = boto3.client(
            service_name="s3",
            region_name="auto",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=Config(signature_version="s3v4"),
        )
        return self._client

    def save(self, key: str, content: bytes, content_type: str) -> StoredArtifact:
        from botocore.exceptions import BotoCoreError, ClientError

        logger.info("Uploading %s (%s bytes) to R2 bucket %s", key, len(content), self.bucket)
        try:
            self._get_client().put_object(Bucket=self.bucket, Key=key, Body=content, ContentType=content_type)
        except (BotoCoreError, ClientError) as e:
            logger.error("R2 upload failed for %s: %s", key, e)
            raise StorageError(f"Could not store the uploaded file: {e}") from e
        return StoredArtifact(key=key, url=f"{self.public_endpoint}/{key}", size=len(content), content_type=content_type)


def build_storage(settings: Settings) -> ArtifactStorage:
    if settings.storage_backend == "r2":
        missing = [
            name
            for name in ("r2_endpoint", "r2_bucket_name", "r2_public_endpoint", "r2_access_key_id", "r2_secret_access_key")
            if not getattr(settings, name)
        ]
        if missing:
            raise ValueError(f"STORAGE_BACKEND=r2 requires: {', '.join(m.upper() for m in missing)}")
        return R2ArtifactStorage(
            endpoint_url=settings.r2_endpoint,
            bucket=settings.r2_bucket_name,
            public_endpoint=settings.r2_public_endpoint,
            access_key_id=settings.r2_access_key_id,
            secret_access_key=settings.r2_secret_access_key,
        )
    if settings.storage_backend != "local":
        raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend}")
    return LocalArtifactStorage(settings.local_upload_dir, settings.public_upload_base_url)
