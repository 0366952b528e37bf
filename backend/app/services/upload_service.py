"""
Person Registry Backend — Upload Storage Service
==================================================

What:  Checks, stores and cleans up the resume/media files attached to
       create and update requests.
Why:   Keeps all file system work behind one object with one set of rules.
How:   Two phases per request:
       1. read_uploads(): reads each provided UploadFile, rejects disallowed
          content types and requests whose files together exceed the size
          limit (UploadError, before any field validation runs)
       2. store_all(): writes the accepted files to the upload directory as
          "<epoch-millis>-<original-filename>" and returns the stored paths
Who:   Called by PersonService; injected into routes via get_upload_service.

Storage layout:
    uploads/
    ├── 1718000000000-cv.pdf
    └── 1718000000412-portrait.png

    The value written to the database is "<upload_dir>/<filename>", exactly as
    configured, so a relative upload_dir yields relative paths.

Filename safety:
    Only the final component of the client's filename is kept, so names like
    "../../etc/passwd" cannot escape the upload directory. Files are opened
    with O_EXCL; on a same-millisecond collision the timestamp is bumped.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

import aiofiles
from fastapi import Request, UploadFile
from starlette.datastructures import FormData

from app.config import settings
from app.exceptions import FileStorageError, UploadError

logger = logging.getLogger(__name__)

# Form fields that may carry a file, mapped to the column that stores its path
UPLOAD_FIELDS = {
    "resume": "resume_path",
    "media": "media_path",
}

_MAX_NAME_ATTEMPTS = 50


@dataclass
class PendingUpload:
    """A file that passed type/size checks but has not been written yet."""
    field: str
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class UploadService:
    """
    Manages the upload directory.

    Lifecycle of an uploaded file:
        1. check_single_file_per_field() — at most one part per upload field
        2. read_uploads() — content type and combined size checked
        3. (PersonService validates the text fields)
        4. store_all() — file written with a timestamp-prefixed name
        5. On a failed insert/update: cleanup() removes what step 4 wrote
    """

    def __init__(
        self,
        upload_dir: Optional[str] = None,
        max_upload_size: Optional[int] = None,
        allowed_types: Optional[Iterable[str]] = None,
    ):
        self.upload_dir = upload_dir or settings.upload_dir
        self.upload_root = Path(self.upload_dir).resolve()
        self.max_upload_size = max_upload_size or settings.max_upload_size
        self.allowed_types = set(allowed_types or settings.allowed_upload_types)

    def ensure_directory(self) -> Path:
        self.upload_root.mkdir(parents=True, exist_ok=True)
        return self.upload_root

    # ── Phase 1: checks ───────────────────────────────────────────────────

    def validate_content_type(self, field: str, filename: str, content_type: Optional[str]) -> str:
        """
        Check the declared content type against the allow-list.

        Raises:
            UploadError naming the field and the rejected type
        """
        mime_type = (content_type or "").split(";")[0].strip().lower()
        if mime_type not in self.allowed_types:
            raise UploadError(
                message="Invalid file type",
                field=field,
                context={
                    "filename": filename,
                    "content_type": mime_type or None,
                    "allowed": sorted(self.allowed_types),
                },
            )
        return mime_type

    def validate_total_size(self, total_size: int) -> None:
        """Reject a request whose files together exceed max_upload_size."""
        if total_size > self.max_upload_size:
            max_mb = self.max_upload_size / (1024 * 1024)
            raise UploadError(
                message=f"File too large. Uploads are limited to {max_mb:g}MB per request.",
                context={"max_size": self.max_upload_size, "actual_size": total_size},
            )

    def check_single_file_per_field(self, form: FormData) -> None:
        """Reject a request that sends more than one part for an upload field."""
        for field in UPLOAD_FIELDS:
            count = len(form.getlist(field))
            if count > 1:
                raise UploadError(
                    message=f"Only one {field} file is allowed",
                    field=field,
                    context={"received": count},
                )

    async def read_uploads(
        self, files: Mapping[str, Optional[UploadFile]]
    ) -> List[PendingUpload]:
        """
        Read and check every provided upload.

        Fields that are missing, None, or carry an empty filename (a form
        file input left blank) count as "no file".

        Returns:
            Accepted uploads, in UPLOAD_FIELDS order.
        Raises:
            UploadError on the first disallowed type or when the combined
            size goes over the limit. Nothing has been written at that point.
        """
        pending: List[PendingUpload] = []
        total_size = 0

        for field in UPLOAD_FIELDS:
            upload = files.get(field)
            if upload is None or not upload.filename:
                continue

            content_type = self.validate_content_type(field, upload.filename, upload.content_type)

            # Declared size first, so an oversized file is not read into memory
            if upload.size is not None:
                self.validate_total_size(total_size + upload.size)

            content = await upload.read()
            total_size += len(content)
            self.validate_total_size(total_size)

            pending.append(PendingUpload(
                field=field,
                filename=upload.filename,
                content_type=content_type,
                content=content,
            ))

        return pending

    # ── Phase 2: storage ──────────────────────────────────────────────────

    @staticmethod
    def safe_filename(filename: str) -> str:
        """Keep only the last path component of a client-supplied name."""
        name = Path(filename.replace("\\", "/")).name.strip()
        if name in ("", ".", ".."):
            return "upload"
        return name

    async def store(self, upload: PendingUpload) -> str:
        """
        Write one accepted upload to disk.

        Returns:
            Stored path "<upload_dir>/<timestamp>-<filename>".
        Raises:
            FileStorageError if the directory or file cannot be written.
        """
        original = self.safe_filename(upload.filename)
        timestamp = int(time.time() * 1000)

        try:
            self.ensure_directory()
            for _ in range(_MAX_NAME_ATTEMPTS):
                stored_name = f"{timestamp}-{original}"
                target = self.upload_root / stored_name
                try:
                    async with aiofiles.open(target, "xb") as f:
                        await f.write(upload.content)
                    break
                except FileExistsError:
                    timestamp += 1
            else:
                raise FileStorageError(
                    message="Could not allocate a unique upload filename",
                    context={"filename": original},
                )
        except OSError as e:
            logger.error("Failed to store upload %s: %s", original, str(e))
            raise FileStorageError(
                message="Failed to save uploaded file",
                context={"filename": original, "os_error": str(e)},
            )

        stored_path = (Path(self.upload_dir) / stored_name).as_posix()
        logger.info("Upload stored: %s (%d bytes, %s)", stored_path, upload.size, upload.content_type)
        return stored_path

    async def store_all(self, uploads: List[PendingUpload]) -> Dict[str, str]:
        """
        Store every accepted upload.

        Returns:
            Mapping of path column ("resume_path" / "media_path") to stored path.
        If one write fails, files already written by this call are removed
        before the error propagates.
        """
        stored: Dict[str, str] = {}
        try:
            for upload in uploads:
                stored[UPLOAD_FIELDS[upload.field]] = await self.store(upload)
        except FileStorageError:
            await self.cleanup(stored.values())
            raise
        return stored

    async def cleanup(self, stored_paths: Iterable[str]) -> None:
        """
        Remove files written earlier in a request whose write to the store
        did not go through.

        Failures are logged, not raised: the caller is already handling a
        more important error.
        """
        for stored_path in stored_paths:
            path = self.upload_root / Path(stored_path).name
            try:
                path.unlink(missing_ok=True)
                logger.info("Removed orphaned upload: %s", stored_path)
            except OSError as e:
                logger.warning("Failed to remove upload %s: %s", stored_path, str(e))


def get_upload_service(request: Request) -> UploadService:
    """FastAPI dependency returning the UploadService created by the app factory."""
    return request.app.state.upload_service
