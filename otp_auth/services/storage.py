"""
Profile image storage on the local filesystem.

Stored references are paths relative to the upload root (e.g.
``profile_images/1718000000000-3fa2c1d9-me.png``) so records stay valid
when the deployment root moves. The same root is served read-only under
``/uploads``.
"""

from __future__ import annotations

import logging
import re
import secrets
import time
from pathlib import Path

from fastapi import UploadFile

from otp_auth.core.config import settings
from otp_auth.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(original: str) -> str:
    name = Path(original.replace("\\", "/")).name
    name = _UNSAFE_CHARS.sub("_", name).strip("._")
    return name[-100:] or "image"


class ProfileImageStore:
    subdir = "profile_images"

    def __init__(
        self,
        root: Path | str = settings.UPLOAD_DIR,
        max_bytes: int = settings.MAX_IMAGE_BYTES,
        allowed_types: list[str] | None = None,
    ) -> None:
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.allowed_types = set(allowed_types or settings.ALLOWED_IMAGE_TYPES)

    def validate(self, upload: UploadFile) -> None:
        if upload.content_type not in self.allowed_types:
            raise ValidationError("Only JPEG and PNG images are allowed")

    def _unique_name(self, original: str) -> str:
        return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}-{safe_filename(original)}"

    def resolve(self, relative: str) -> Path:
        """Absolute path of a stored reference; refuses paths outside the root."""
        root = self.root.resolve()
        path = (root / relative).resolve()
        if root not in path.parents:
            raise ValidationError("Invalid image path")
        return path

    async def save(self, upload: UploadFile) -> str:
        """Write *upload* under the root and return its relative reference.

        The size ceiling is enforced while streaming; a partial file is
        removed before the error is raised.
        """
        self.validate(upload)
        relative = f"{self.subdir}/{self._unique_name(upload.filename or 'image')}"
        path = self.resolve(relative)
        path.parent.mkdir(parents=True, exist_ok=True)

        written = 0
        try:
            with path.open("xb") as fh:
                while True:
                    chunk = await upload.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise ValidationError(
                            f"Profile image size cannot exceed {self.max_bytes // (1024 * 1024)}MB"
                        )
                    fh.write(chunk)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        logger.info("Stored profile image %s (%d bytes)", relative, written)
        return relative

    def delete(self, relative: str | None) -> bool:
        """Remove a stored image. Returns ``False`` if there was nothing to delete."""
        if not relative:
            return False
        path = self.resolve(relative)
        if not path.exists():
            logger.info("Profile image %s already absent", relative)
            return False
        path.unlink(missing_ok=True)
        logger.info("Deleted profile image %s", relative)
        return True


def get_image_store() -> ProfileImageStore:
    """FastAPI dependency: the configured image store."""
    return ProfileImageStore()
