"""
Local-disk storage for task attachments and task submissions.

Stored names are ``<uuid4 hex>_<sanitized original name>`` so they cannot
collide or escape their category directory.
"""

import uuid
from pathlib import Path

import anyio
from fastapi import UploadFile
from werkzeug.utils import secure_filename

from app.exceptions import ValidationError
from app.utils.logger import setup_logger

logger = setup_logger("storage")

TASK_FILES = "tasks"
SUBMISSION_FILES = "submissions"

MAX_NAME_LENGTH = 100
CHUNK_SIZE = 1024 * 1024


def sanitize_filename(filename: str | None) -> str:
    """Reduce a client-supplied name to a safe basename."""
    # Windows clients may send a full path; keep only the last component.
    base = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    base = secure_filename(base) or "upload"
    if len(base) > MAX_NAME_LENGTH:
        stem, dot, suffix = base.rpartition(".")
        if dot and len(suffix) < 16:
            base = stem[: MAX_NAME_LENGTH - len(suffix) - 1] + "." + suffix
        else:
            base = base[:MAX_NAME_LENGTH]
    return base


class UploadStorage:
    def __init__(self, root: str | Path, max_bytes: int):
        self.root = Path(root)
        self.max_bytes = max_bytes
        for category in (TASK_FILES, SUBMISSION_FILES):
            (self.root / category).mkdir(parents=True, exist_ok=True)

    def category_dir(self, category: str) -> Path:
        return self.root / category

    def path_for(self, category: str, stored_name: str) -> Path:
        return self.category_dir(category) / stored_name

    async def save(self, upload: UploadFile | None, category: str) -> str:
        """Persist an upload and return its stored name."""
        if upload is None or not upload.filename:
            raise ValidationError("A file upload is required")

        stored_name = f"{uuid.uuid4().hex}_{sanitize_filename(upload.filename)}"
        target = self.path_for(category, stored_name)

        written = 0
        try:
            async with await anyio.open_file(target, "wb") as out:
                while chunk := await upload.read(CHUNK_SIZE):
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise ValidationError(
                            f"File exceeds the {self.max_bytes} byte upload limit"
                        )
                    await out.write(chunk)
        except Exception:
            self.delete(category, stored_name)
            raise

        if written == 0:
            self.delete(category, stored_name)
            raise ValidationError("Uploaded file is empty")

        logger.info(f"Stored {category} upload '{upload.filename}' as {stored_name} ({written} bytes)")
        return stored_name

    def delete(self, category: str, stored_name: str) -> None:
        """Remove a stored file; used to reclaim uploads whose DB write failed."""
        try:
            self.path_for(category, stored_name).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove orphaned upload {category}/{stored_name}: {e}")
