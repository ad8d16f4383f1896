"""
Upload storage for post images.

Uploads are admitted at the HTTP boundary (type, size and count checks)
before any repository call, then written under ``upload_dir`` with a
``<epoch-ms>-<name>`` file name and served from ``upload_url_prefix``.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool
from loguru import logger
from slugify import slugify

from agora.core.config import Settings
from agora.core.exceptions import ValidationError


@dataclass(frozen=True)
class StoredFile:
    """Metadata of a file written to upload storage."""

    file_name: str
    file_url: str
    file_type: str
    file_size: int
    path: Path

    def to_dict(self) -> dict[str, str | int]:
        return {
            "fileName": self.file_name,
            "fileUrl": self.file_url,
            "fileType": self.file_type,
            "fileSize": self.file_size,
        }


@dataclass(frozen=True)
class AdmittedFile:
    """An upload that passed admission checks, held in memory."""

    file_name: str
    content_type: str
    data: bytes


class UploadStorage:
    """
    Validates and stores uploaded images.

    Usage:
        storage = UploadStorage(settings)
        admitted = await storage.admit_many(files, field="attachments")
        stored = await storage.save_many(admitted)
    """

    def __init__(self, settings: Settings) -> None:
        self.root = Path(settings.upload_dir)
        self.url_prefix = settings.upload_url_prefix.rstrip("/")
        self.max_size = settings.max_upload_size_bytes
        self.max_files = settings.max_attachments_per_post

    def ensure_root(self) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        return self.root

    # ==================== Admission ====================

    async def admit(self, upload: UploadFile, field: str = "image") -> AdmittedFile:
        """
        Read an upload and check it is an image within the size limit.

        Raises:
            ValidationError: not an image, empty, or too large
        """
        content_type = upload.content_type or ""
        if not content_type.startswith("image/"):
            logger.warning(f"Rejected upload {upload.filename!r} of type {content_type!r}")
            raise ValidationError.for_field(field, "Only image files are allowed")

        # Read one byte past the limit so oversize files are detected
        # without buffering all of them
        data = await upload.read(self.max_size + 1)
        if len(data) > self.max_size:
            raise ValidationError.for_field(
                field, f"File exceeds {self.max_size // (1024 * 1024)}MB limit"
            )
        if not data:
            raise ValidationError.for_field(field, "File is empty")

        return AdmittedFile(
            file_name=upload.filename or "upload",
            content_type=content_type,
            data=data,
        )

    async def admit_many(
        self,
        uploads: list[UploadFile],
        field: str = "attachments",
    ) -> list[AdmittedFile]:
        """Admit up to ``max_attachments_per_post`` uploads."""
        uploads = [u for u in uploads if u.filename]
        if len(uploads) > self.max_files:
            raise ValidationError.for_field(
                field, f"At most {self.max_files} files per post"
            )
        return [await self.admit(upload, field) for upload in uploads]

    # ==================== Storage ====================

    def _stored_name(self, original: str) -> str:
        path = Path(original)
        stem = slugify(path.stem)[:100] or "file"
        suffix = slugify(path.suffix.lstrip("."))[:10]
        millis = int(datetime.utcnow().timestamp() * 1000)
        name = f"{millis}-{stem}"
        return f"{name}.{suffix}" if suffix else name

    async def save(self, admitted: AdmittedFile) -> StoredFile:
        """Write admitted file to disk."""
        root = self.ensure_root()
        stored_name = self._stored_name(admitted.file_name)
        path = root / stored_name

        counter = 1
        while path.exists():
            path = root / f"{counter}-{stored_name}"
            counter += 1

        await run_in_threadpool(path.write_bytes, admitted.data)

        return StoredFile(
            file_name=admitted.file_name,
            file_url=f"{self.url_prefix}/{path.name}",
            file_type=admitted.content_type,
            file_size=len(admitted.data),
            path=path,
        )

    async def save_many(self, admitted: list[AdmittedFile]) -> list[StoredFile]:
        stored: list[StoredFile] = []
        try:
            for item in admitted:
                stored.append(await self.save(item))
        except OSError:
            await self.discard(stored)
            raise
        return stored

    async def discard(self, stored: list[StoredFile]) -> None:
        """Remove files whose database records were never committed."""
        for item in stored:
            try:
                await run_in_threadpool(item.path.unlink, True)
            except OSError as e:
                logger.warning(f"Could not remove {item.path}: {e}")
