"""
RecordHub Backend - Upload Storage Service
===========================================

What:  Validates, stores, lists and removes uploaded files.
How:   Files land flat in the upload directory (also served statically at
       /uploads) under a unique name: `<uuid hex>_<sanitized original name>`.
Who:   The /api/files routes.

Checks on upload, cheapest first:
    1. Extension allow-list
    2. Size (declared Content-Length, then actual bytes; empty files rejected)
    3. Write with aiofiles under a generated name

Every name coming from a URL is resolved and checked to stay inside the
upload directory before it touches the filesystem.
"""

import logging
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import aiofiles

from recordhub.exceptions import FileStorageError, NotFoundError, ValidationError
from recordhub.schemas.record import StoredFile

logger = logging.getLogger(__name__)

# Spreadsheet and text formats the records importer accepts
DEFAULT_ALLOWED_EXTENSIONS = frozenset({".csv", ".xlsx", ".xls", ".json", ".txt"})

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_STORED_NAME = re.compile(r"^[0-9a-f]{32}_(?P<original>.+)$")


def ensure_upload_dir(upload_dir: str) -> Path:
    """Create the upload directory (and parents) if missing. Idempotent."""
    path = Path(upload_dir).resolve()
    path.mkdir(parents=True, exist_ok=True)
    return path


def sanitize_filename(filename: str) -> str:
    """Strip directories and anything outside [A-Za-z0-9._-] from a client filename."""
    name = Path(filename.replace("\\", "/")).name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name or "upload"


class FileService:
    """
    Upload directory manager.

    Args:
        upload_dir: Directory files are written to and served from.
        max_file_size: Upper size limit in bytes.
        allowed_extensions: Lower-case extensions including the dot.
    """

    def __init__(
        self,
        upload_dir: str,
        max_file_size: int,
        allowed_extensions: Iterable[str] = DEFAULT_ALLOWED_EXTENSIONS,
    ):
        self.upload_dir = ensure_upload_dir(upload_dir)
        self.max_file_size = max_file_size
        self.allowed_extensions = frozenset(ext.lower() for ext in allowed_extensions)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """
        Returns the normalized extension (lowercase with dot).

        Raises:
            ValidationError if the extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in self.allowed_extensions:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(self.allowed_extensions))}"
                ),
                field="file",
                context={"extension": ext},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Check the declared size first, then the real byte count.

        Raises:
            ValidationError for empty or oversized files.
        """
        max_mb = self.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="file")

        if content_length and content_length > self.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"reported_size": content_length},
            )

        if actual_size > self.max_file_size:
            raise ValidationError(
                message=f"File is too large ({actual_size / (1024 * 1024):.1f}MB). Maximum is {max_mb:.0f}MB.",
                field="file",
                context={"actual_size": actual_size},
            )

    def resolve(self, filename: str) -> Path:
        """
        Map a stored filename to its path, refusing anything that escapes
        the upload directory.

        Raises:
            ValidationError: traversal attempt or nested path
            NotFoundError: no such file
        """
        candidate = (self.upload_dir / filename).resolve()
        if candidate.parent != self.upload_dir:
            raise ValidationError(message="Invalid file name", field="filename")
        if not candidate.is_file():
            raise NotFoundError(resource="file", resource_id=filename)
        return candidate

    # ── Storage ───────────────────────────────────────────────────────────

    def _generate_storage_path(self, filename: str) -> Tuple[Path, str]:
        stored_name = f"{uuid.uuid4().hex}_{sanitize_filename(filename)}"
        return self.upload_dir / stored_name, stored_name

    async def store_file(self, filename: str, content: bytes) -> StoredFile:
        """
        Write already-validated content to disk.

        Raises:
            FileStorageError if the write fails.
        """
        absolute_path, stored_name = self._generate_storage_path(filename)

        try:
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded file.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", stored_name, len(content))
        return self.describe(absolute_path)

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> StoredFile:
        """Complete upload pipeline: extension → size → write."""
        self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        return await self.store_file(filename, content)

    def describe(self, path: Path) -> StoredFile:
        stat = path.stat()
        return StoredFile(
            filename=path.name,
            original_name=self.original_name(path.name),
            size=stat.st_size,
            url=f"/uploads/{path.name}",
            uploaded_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    @staticmethod
    def original_name(stored_name: str) -> str:
        match = _STORED_NAME.match(stored_name)
        return match.group("original") if match else stored_name

    def list_files(self) -> List[StoredFile]:
        """All stored files, newest first. Dotfiles and directories are skipped."""
        files = [
            self.describe(path)
            for path in self.upload_dir.iterdir()
            if path.is_file() and not path.name.startswith(".")
        ]
        files.sort(key=lambda f: f.uploaded_at, reverse=True)
        return files

    async def delete_file(self, filename: str) -> None:
        """
        Raises:
            NotFoundError if the file does not exist.
            FileStorageError if it cannot be removed.
        """
        path = self.resolve(filename)
        try:
            os.remove(path)
        except OSError as e:
            raise FileStorageError(
                message="Failed to delete file.",
                context={"path": str(path), "os_error": str(e)},
            )
        logger.info("File deleted: %s", filename)
