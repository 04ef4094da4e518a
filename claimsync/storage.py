"""Local object store for claim attachments with time-limited signed URLs."""

import hashlib
import hmac
import time
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from common.constants import SIGNED_URL_EXPIRY_SECONDS, STORAGE_BUCKET
from common.logging_config import get_logger
from claimsync.exceptions import StorageError

logger = get_logger(__name__)


class StorageService:
    """
    Stores attachment bytes under ``<root>/<bucket>/<path>`` and issues
    HMAC-signed download URLs that expire.
    """

    def __init__(self, root: str, public_url: str, signing_key: str, bucket: str = STORAGE_BUCKET):
        self.root = Path(root)
        self.public_url = public_url.rstrip("/")
        self.signing_key = signing_key.encode("utf-8")
        self.bucket = bucket

    def _resolve(self, object_path: str) -> Path:
        """
        Map an object path to a file under the bucket directory.

        Raises:
            StorageError: If the path is empty or escapes the bucket
        """
        if not object_path or not object_path.strip("/"):
            raise StorageError("Object path is empty")

        bucket_dir = (self.root / self.bucket).resolve()
        try:
            resolved = (bucket_dir / object_path.lstrip("/")).resolve()
        except (ValueError, TypeError) as e:
            raise StorageError(f"Invalid object path '{object_path!r}': {e}")
        try:
            resolved.relative_to(bucket_dir)
        except ValueError:
            raise StorageError(f"Object path '{object_path}' is outside the storage bucket")
        return resolved

    def save_object(self, object_path: str, data: bytes) -> str:
        """
        Write object bytes to disk, replacing any existing object.

        Returns:
            The object path as stored
        """
        target = self._resolve(object_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug(f"Stored object {object_path} ({len(data)} bytes)")
        return object_path

    def read_object(self, object_path: str) -> bytes:
        target = self._resolve(object_path)
        if not target.is_file():
            raise StorageError(f"Object not found: {object_path}")
        return target.read_bytes()

    def object_exists(self, object_path: str) -> bool:
        try:
            return self._resolve(object_path).is_file()
        except StorageError:
            return False

    def _signature(self, object_path: str, expires: int) -> str:
        message = f"{self.bucket}/{object_path}:{expires}".encode("utf-8")
        return hmac.new(self.signing_key, message, hashlib.sha256).hexdigest()

    def create_signed_url(
        self,
        object_path: Optional[str],
        expires_in: int = SIGNED_URL_EXPIRY_SECONDS,
        now: Optional[float] = None,
    ) -> str:
        """
        Issue a download URL for an existing object.

        Args:
            object_path: Path of the object inside the bucket
            expires_in: Validity in seconds (default one hour)
            now: Reference time, for tests

        Returns:
            Absolute signed URL

        Raises:
            StorageError: If the object does not exist or the path is invalid
        """
        if not object_path:
            raise StorageError("Object path is empty")
        if not self._resolve(object_path).is_file():
            raise StorageError(f"Object not found: {object_path}")

        expires = int((now if now is not None else time.time()) + expires_in)
        signature = self._signature(object_path, expires)
        return (
            f"{self.public_url}/storage/v1/object/sign/{self.bucket}/{quote(object_path)}"
            f"?expires={expires}&signature={signature}"
        )

    def verify_signature(self, object_path: str, expires: int, signature: str, now: Optional[float] = None) -> bool:
        """
        Check a signed URL's signature and expiry.
        """
        if expires < (now if now is not None else time.time()):
            return False
        expected = self._signature(object_path, expires)
        return hmac.compare_digest(expected, signature)
