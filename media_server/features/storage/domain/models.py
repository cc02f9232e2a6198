from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Tuple
from urllib.parse import urlparse

from media_server.core.common.enums import MediaKind

THUMBNAILS_SUBDIR = "thumbnails"
SERVABLE_SUBDIRS = ("images", "videos", THUMBNAILS_SUBDIR)


@dataclass(frozen=True)
class StoredFile:
    """
    Represents a physical file in content-addressed storage.
    Size and modification time are observed from the filesystem, not tracked.
    """
    id: str
    kind: MediaKind
    filename: str
    path: Path
    size_bytes: int
    modified_at: datetime
    url: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "filename": self.filename,
            "url": self.url,
            "type": self.kind.value,
            "mtime": self.modified_at.isoformat(),
            "size": self.size_bytes,
        }

    @classmethod
    def from_path(cls, path: Path, kind: MediaKind, url: str) -> "StoredFile":
        stat = path.stat()
        return cls(
            id=path.stem,
            kind=kind,
            filename=path.name,
            path=path,
            size_bytes=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            url=url,
        )


def build_file_url(public_url: str, subdir: str, filename: str) -> str:
    return f"{public_url.rstrip('/')}/files/{subdir}/{filename}"


def parse_file_url(url: str) -> Tuple[str, str]:
    """
    Returns (subdir, filename) from a URL produced by build_file_url.
    Only the path is inspected, so URLs from an older PUBLIC_URL still resolve.
    """
    parts = [p for p in urlparse(url).path.split("/") if p]
    if len(parts) < 3 or parts[-3] != "files":
        raise ValueError(f"Not a media file URL: {url}")
    return parts[-2], parts[-1]
