"""
File storage capability: manuscripts and published PDFs.

The core never inspects file contents. It uploads bytes under a relative
path, reads them back, and hands out time-limited signed URLs.
"""
import logging
import os
import secrets
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from itsdangerous import BadSignature, URLSafeTimedSerializer

from .errors import BackendUnavailableError, NotFoundError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)

SIGNING_SALT = "journal-press-file-url"


def validate_storage_path(path: str) -> str:
    """
    Reject storage paths that could escape the storage root.

    Raises:
        ValidationError: If the path is empty, absolute or contains ".."
    """
    if not path or not isinstance(path, str):
        raise ValidationError("File path must be a non-empty string", field="path")
    if ".." in path or path.startswith("/") or path.startswith("\\"):
        raise ValidationError("Invalid file path", field="path")
    return path


def make_upload_path(prefix: str, filename: str) -> str:
    """Build 'prefix/<ms timestamp>-<random>.<ext>' for an uploaded file."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    token = secrets.token_hex(4)
    return f"{prefix}/{int(time.time() * 1000)}-{token}.{ext}"


def manuscript_prefix(user_id: str) -> str:
    """Storage prefix for the manuscripts a user uploads."""
    return f"manuscripts/{user_id}"


class FileStorage(ABC):
    """Abstract base class for file storage backends."""

    @abstractmethod
    def upload(self, path: str, data: bytes) -> str:
        """Store ``data`` under ``path`` and return its reference."""
        pass

    @abstractmethod
    def download(self, ref: str) -> bytes:
        """Return the bytes stored under ``ref``."""
        pass

    @abstractmethod
    def delete(self, ref: str) -> bool:
        """Remove the file under ``ref``; False when there was nothing to remove."""
        pass

    @abstractmethod
    def create_signed_url(self, ref: str, ttl_seconds: int) -> str:
        """Return a URL granting read access to ``ref`` for ``ttl_seconds``."""
        pass


class LocalFileStorage(FileStorage):
    """Stores files in a local directory; URLs are signed with itsdangerous."""

    def __init__(self, root: str, secret_key: str, base_url: str = "/files"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self._serializer = URLSafeTimedSerializer(secret_key, salt=SIGNING_SALT)

    def _resolve(self, ref: str) -> Path:
        return self.root / validate_storage_path(ref)

    def upload(self, path: str, data: bytes) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise BackendUnavailableError(f"Could not store file '{path}': {e}") from e
        logger.info(f"Stored file {path} ({len(data)} bytes)")
        return path

    def download(self, ref: str) -> bytes:
        target = self._resolve(ref)
        if not target.is_file():
            raise NotFoundError("file", ref)
        try:
            return target.read_bytes()
        except OSError as e:
            raise BackendUnavailableError(f"Could not read file '{ref}': {e}") from e

    def delete(self, ref: str) -> bool:
        target = self._resolve(ref)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise BackendUnavailableError(f"Could not delete file '{ref}': {e}") from e
        logger.info(f"Deleted file {ref}")
        return True

    def exists(self, ref: str) -> bool:
        return self._resolve(ref).is_file()

    def create_signed_url(self, ref: str, ttl_seconds: int) -> str:
        validate_storage_path(ref)
        if ttl_seconds <= 0:
            raise ValidationError("ttl_seconds must be positive", field="ttl_seconds")
        token = self._serializer.dumps({"ref": ref, "ttl": int(ttl_seconds)})
        return f"{self.base_url}/{token}"

    def resolve_signed_token(self, token: str) -> str:
        """
        Return the file reference carried by a signed URL token.

        Raises:
            PermissionDeniedError: If the token was tampered with or has expired
        """
        try:
            payload, signed_at = self._serializer.loads(token, return_timestamp=True)
        except BadSignature as e:
            raise PermissionDeniedError("Invalid file link") from e

        if signed_at.tzinfo is None:
            signed_at = signed_at.replace(tzinfo=timezone.utc)
        age = (datetime.now(timezone.utc) - signed_at).total_seconds()
        if age > payload.get("ttl", 0):
            raise PermissionDeniedError("File link has expired")
        return validate_storage_path(payload["ref"])

    def __repr__(self) -> str:
        return f"LocalFileStorage(root={os.fspath(self.root)!r})"
