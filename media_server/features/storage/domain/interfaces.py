from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Tuple
from media_server.core.common.enums import MediaKind

class IHasher(ABC):
    @abstractmethod
    def hash_bytes(self, data: bytes) -> str:
        """Calculates a stable hex digest of the given content."""
        pass

class IFileSystem(ABC):
    @abstractmethod
    def new_identifier(self) -> str:
        """Returns a fresh identifier not used by any stored file."""
        pass

    @abstractmethod
    def write_atomic(self, destination: Path, data: bytes) -> Path:
        """
        Writes bytes so that `destination` is either absent or complete.
        Returns the destination path.
        """
        pass

    @abstractmethod
    def resolve(self, subdir: str, filename: str) -> Path:
        """
        Maps a public (subdir, filename) pair to a path inside the storage root.
        Raises BadRequestError on traversal attempts.
        """
        pass

    @abstractmethod
    def list_files(self, kind: MediaKind) -> List[Path]:
        """Lists stored files of one kind."""
        pass

    @abstractmethod
    def directory_stats(self, subdir: str) -> Tuple[int, int]:
        """Returns (file_count, total_bytes) for a storage directory."""
        pass
