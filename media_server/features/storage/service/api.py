from pathlib import Path
from typing import Optional

from media_server.core.common.enums import MediaKind
from ..data.hasher import SHA256Hasher
from ..data.local_fs import LocalFileSystem
from ..domain.interfaces import IHasher
from ..domain.models import StoredFile, THUMBNAILS_SUBDIR, build_file_url


class StorageService:
    """
    Facade for the Storage Feature.
    Owns hashing, the on-disk layout and public URL construction.
    """
    def __init__(self, root: Path, public_url: str, hasher: Optional[IHasher] = None):
        self.hasher = hasher or SHA256Hasher()
        self.fs = LocalFileSystem(root)
        self.public_url = public_url

    def content_hash(self, data: bytes) -> str:
        return self.hasher.hash_bytes(data)

    def final_path(self, kind: MediaKind, identifier: str, extension: str) -> Path:
        """Storage path from a generated id and a sniffed extension; never a client filename."""
        return self.fs.dir_for(kind) / f"{identifier}.{extension}"

    def thumbnail_path(self, identifier: str) -> Path:
        return self.fs.thumbnails_dir / f"{identifier}.jpg"

    def url_for(self, kind: MediaKind, filename: str) -> str:
        return build_file_url(self.public_url, kind.subdir, filename)

    def thumbnail_url(self, identifier: str) -> str:
        return build_file_url(self.public_url, THUMBNAILS_SUBDIR, f"{identifier}.jpg")

    def stored_file(self, path: Path, kind: MediaKind) -> StoredFile:
        return StoredFile.from_path(path, kind, self.url_for(kind, path.name))
