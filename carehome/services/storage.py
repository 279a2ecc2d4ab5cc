"""Per-resident file storage with short-lived signed download URLs.

Files live under ``{storage_root}/{bucket}/{profile_id}/{filename}``. Access
to a resident's folder is decided by the ``resident_files`` policies with
the folder's profile id as the row. Downloads go through URLs signed with
HMAC-SHA256 that expire after ``signed_url_ttl_seconds``.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import time
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from urllib.parse import urlencode

from carehome.core.config import Settings, get_settings
from carehome.core.exceptions import (
    DuplicateResourceError,
    FileNotFoundInStorageError,
    InvalidInputError,
    PayloadTooLargeError,
    SignatureError,
    StorageError,
)
from carehome.core.logging import get_logger
from carehome.policy import Actor, Operation, PolicySet, Table, get_policy_set

logger = get_logger(__name__)

MAX_FILENAME_LENGTH = 255


@dataclass
class StoredFile:
    key: str
    filename: str
    size: int
    updated_at: datetime


@dataclass
class SignedUrl:
    url: str
    key: str
    expires_at: datetime


def validate_filename(filename: str) -> str:
    """Reject names that would escape the resident's folder or be hidden in it."""
    name = filename.strip()
    if (
        not name
        or name.startswith(".")
        or "/" in name
        or "\\" in name
        or "\x00" in name
        or len(name) > MAX_FILENAME_LENGTH
    ):
        raise InvalidInputError("Invalid file name", field="filename", value=filename)
    return name


def parse_key(key: str) -> tuple[uuid.UUID, str]:
    """Split an object key into its profile id and file name."""
    try:
        folder, filename = key.split("/", 1)
        profile_id = uuid.UUID(folder)
    except ValueError as e:
        raise InvalidInputError("Invalid file key", field="key", value=key) from e
    return profile_id, validate_filename(filename)


class ResidentFileStorage:
    """Filesystem-backed bucket of resident documents."""

    def __init__(
        self,
        settings: Settings | None = None,
        policies: PolicySet | None = None,
        root: Path | None = None,
    ):
        self.settings = settings or get_settings()
        self.policies = policies or get_policy_set()
        self.root = Path(root) if root is not None else self.settings.storage_path
        self._signing_key = self.settings.storage_signing_key.encode()

    def object_key(self, profile_id: uuid.UUID, filename: str) -> str:
        return f"{profile_id}/{validate_filename(filename)}"

    def _path(self, key: str) -> Path:
        profile_id, filename = parse_key(key)
        folder = (self.root / str(profile_id)).resolve()
        path = (folder / filename).resolve()
        if path.parent != folder:
            raise InvalidInputError("Invalid file key", field="key", value=key)
        return path

    def _authorize(self, actor: Actor | None, operation: Operation, profile_id: uuid.UUID) -> None:
        self.policies.require(actor, Table.RESIDENT_FILES, operation, {"profile_id": profile_id})

    def _stat(self, key: str, path: Path) -> StoredFile:
        stat = path.stat()
        return StoredFile(
            key=key,
            filename=path.name,
            size=stat.st_size,
            updated_at=datetime.fromtimestamp(stat.st_mtime, UTC),
        )

    async def upload(
        self,
        actor: Actor | None,
        profile_id: uuid.UUID,
        filename: str,
        data: bytes,
        *,
        upsert: bool = True,
    ) -> StoredFile:
        """Store a file in the resident's folder.

        Args:
            actor: Uploading user
            profile_id: Resident profile owning the folder
            filename: Name within the folder
            data: File contents
            upsert: Overwrite an existing file of the same name

        Raises:
            PolicyDeniedError: The actor may not upload to this folder
            PayloadTooLargeError: Contents exceed ``max_upload_bytes``
            DuplicateResourceError: File exists and ``upsert`` is False
        """
        self._authorize(actor, Operation.INSERT, profile_id)
        if len(data) > self.settings.max_upload_bytes:
            raise PayloadTooLargeError(
                details={"size": len(data), "max_bytes": self.settings.max_upload_bytes}
            )
        key = self.object_key(profile_id, filename)
        path = self._path(key)
        if path.exists() and not upsert:
            raise DuplicateResourceError("resident_file", field="key", value=key)

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
            tmp_path.write_bytes(data)
            tmp_path.replace(path)

        try:
            await asyncio.to_thread(write)
        except OSError as e:
            raise StorageError(f"Failed to store {key}", operation="upload") from e
        logger.info(f"Stored {key} ({len(data)} bytes) for {actor.id if actor else 'anonymous'}")
        return self._stat(key, path)

    async def list_files(self, actor: Actor | None, profile_id: uuid.UUID) -> list[StoredFile]:
        self._authorize(actor, Operation.SELECT, profile_id)
        folder = self.root / str(profile_id)
        if not folder.is_dir():
            return []
        return [
            self._stat(f"{profile_id}/{path.name}", path)
            for path in sorted(folder.iterdir())
            if path.is_file() and not path.name.startswith(".")
        ]

    async def delete(self, actor: Actor | None, profile_id: uuid.UUID, filename: str) -> None:
        self._authorize(actor, Operation.DELETE, profile_id)
        key = self.object_key(profile_id, filename)
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundInStorageError(key)
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete {key}", operation="delete") from e
        logger.info(f"Deleted {key}")

    def sign(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode()
        return hmac.new(self._signing_key, message, hashlib.sha256).hexdigest()

    async def create_signed_url(
        self,
        actor: Actor | None,
        profile_id: uuid.UUID,
        filename: str,
        expires_in: int | None = None,
    ) -> SignedUrl:
        """Create a download URL valid for ``expires_in`` seconds."""
        self._authorize(actor, Operation.SELECT, profile_id)
        key = self.object_key(profile_id, filename)
        if not self._path(key).is_file():
            raise FileNotFoundInStorageError(key)
        ttl = expires_in or self.settings.signed_url_ttl_seconds
        expires = int(time.time()) + ttl
        query = urlencode({"key": key, "expires": expires, "signature": self.sign(key, expires)})
        return SignedUrl(
            url=f"/api/files/download?{query}",
            key=key,
            expires_at=datetime.fromtimestamp(expires, UTC),
        )

    def verify_signature(self, key: str, expires: int, signature: str, now: float | None = None) -> None:
        """Raise SignatureError unless ``signature`` is valid and unexpired."""
        now = time.time() if now is None else now
        if expires < now:
            raise SignatureError("Download link has expired")
        if not hmac.compare_digest(self.sign(key, expires), signature):
            raise SignatureError()

    def open_signed(self, key: str, expires: int, signature: str) -> Path:
        """Resolve a signed download request to the file path to serve."""
        self.verify_signature(key, expires, signature)
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundInStorageError(key)
        return path
