"""Local filesystem storage for uploaded media.

Storage layout:
    <root>/<YYYY>/<MM>/<hex8>-<safe name>

Public URLs mirror the layout under ``url_prefix`` (``/media/2026/10/...``).
"""

import logging
import os
import re
import secrets
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated, Iterable, List, Optional

from fastapi import Depends

from ..config import settings
from ..exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# uploads are public assets read by whatever serves MEDIA_ROOT
FILE_MODE = 0o644

_YEAR = re.compile(r"^\d{4}$")
_MONTH = re.compile(r"^(0[1-9]|1[0-2])$")


@dataclass
class StoredMedia:
    """Result of storing a single upload on disk."""

    url: str
    file_name: str
    original_name: str
    file_size: int
    file_type: str


@dataclass
class MediaFile:
    name: str
    original_name: str
    url: str
    size: int
    modified_at: datetime


def _sanitise(name: str, max_len: int = 120) -> str:
    """Keep letters, digits, dots and hyphens; everything else becomes an underscore."""
    name = Path(name or "").name
    return re.sub(r"[^A-Za-z0-9.-]", "_", name)[:max_len] or "upload"


class MediaStorage:
    def __init__(
        self,
        root: str | Path,
        url_prefix: str = "/media",
        max_bytes: int = 5 * 1024 * 1024,
        allowed_types: Iterable[str] = (),
    ):
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.max_bytes = max_bytes
        self.allowed_types = frozenset(allowed_types)

    def validate(self, content_type: Optional[str], size: int) -> None:
        if not content_type or content_type not in self.allowed_types:
            raise ValidationError(f"File type not allowed: {content_type or 'unknown'}")
        if size > self.max_bytes:
            raise ValidationError(f"File too large (max {self.max_bytes // (1024 * 1024)} MB)")
        if size == 0:
            raise ValidationError("File is empty")

    async def save(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str],
        *,
        now: Optional[datetime] = None,
    ) -> StoredMedia:
        """Write ``content`` to ``<root>/<YYYY>/<MM>/``.

        Validation happens before anything touches the disk. The bytes go to a
        temp file in the target directory which is then ``os.replace``d into
        place, so a concurrent reader sees either nothing or the whole file.
        """
        self.validate(content_type, len(content))

        now = now or datetime.now(timezone.utc)
        year, month = f"{now.year:04d}", f"{now.month:02d}"
        target_dir = self.root / year / month
        target_dir.mkdir(parents=True, exist_ok=True)

        stored_name = f"{secrets.token_hex(8)}-{_sanitise(filename)}"
        dest_path = target_dir / stored_name

        fd, tmp_path = tempfile.mkstemp(dir=target_dir, prefix=".upload-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            # mkstemp creates 0600
            os.chmod(tmp_path, FILE_MODE)
            os.replace(tmp_path, dest_path)
        except OSError:
            Path(tmp_path).unlink(missing_ok=True)
            raise

        logger.info("Stored media: %s (%d bytes)", dest_path, len(content))

        return StoredMedia(
            url=f"{self.url_prefix}/{year}/{month}/{stored_name}",
            file_name=stored_name,
            original_name=filename,
            file_size=len(content),
            file_type=content_type,
        )

    def resolve(self, url_path: str) -> Path:
        """Map a public media URL onto a file under ``root``; anything outside is rejected."""
        if not url_path:
            raise ValidationError("No file path provided")
        clean = "/" + url_path.lstrip("/")
        if not clean.startswith(self.url_prefix + "/"):
            raise ValidationError("Invalid file path")
        relative = clean[len(self.url_prefix) + 1:]

        root = self.root.resolve()
        candidate = (root / relative).resolve()
        if candidate == root or not candidate.is_relative_to(root):
            raise ValidationError("Invalid file path")
        return candidate

    async def delete(self, url_path: str) -> None:
        file_path = self.resolve(url_path)
        if not file_path.is_file():
            raise NotFoundError("Media", url_path)
        file_path.unlink()
        logger.info("Deleted media: %s", file_path)

    async def list_years(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted((p.name for p in self.root.iterdir() if p.is_dir() and _YEAR.match(p.name)), reverse=True)

    async def list_months(self, year: str) -> List[str]:
        if not _YEAR.match(year):
            raise ValidationError("year must have four digits")
        year_dir = self.root / year
        if not year_dir.is_dir():
            return []
        return sorted((p.name for p in year_dir.iterdir() if p.is_dir() and _MONTH.match(p.name)), reverse=True)

    async def list_files(self, year: str, month: str) -> List[MediaFile]:
        if not _YEAR.match(year) or not _MONTH.match(month):
            raise ValidationError("year must have four digits and month two (01-12)")
        month_dir = self.root / year / month
        if not month_dir.is_dir():
            return []

        files = []
        for path in month_dir.iterdir():
            if not path.is_file() or path.name.startswith("."):
                continue
            stat = path.stat()
            _, _, original = path.name.partition("-")
            files.append(
                MediaFile(
                    name=path.name,
                    original_name=original or path.name,
                    url=f"{self.url_prefix}/{year}/{month}/{path.name}",
                    size=stat.st_size,
                    modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                )
            )
        files.sort(key=lambda f: (f.modified_at, f.name), reverse=True)
        return files


def get_media_storage() -> MediaStorage:
    return MediaStorage(
        root=settings.MEDIA_ROOT,
        url_prefix=settings.MEDIA_URL_PREFIX,
        max_bytes=settings.MEDIA_MAX_UPLOAD_BYTES,
        allowed_types=settings.MEDIA_ALLOWED_TYPES,
    )

MediaStorageDep = Annotated[MediaStorage, Depends(get_media_storage)]
