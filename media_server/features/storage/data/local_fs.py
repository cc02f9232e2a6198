import logging
import os
import secrets
import tempfile
import time
from pathlib import Path
from typing import List, Tuple

from media_server.core.common.enums import MediaKind
from media_server.core.errors import BadRequestError, FileNotFoundInStorageError
from ..domain.interfaces import IFileSystem
from ..domain.models import SERVABLE_SUBDIRS, THUMBNAILS_SUBDIR

logger = logging.getLogger(__name__)

IDENTIFIER_BYTES = 9  # 12 url-safe characters


class LocalFileSystem(IFileSystem):
    """
    Storage layout under the root:
        images/{id}.{ext}, videos/{id}.{ext}, thumbnails/{id}.jpg, tmp/...
    Only the first three are ever served.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.temp_dir = self.root / "tmp"

    def ensure_dirs(self) -> None:
        for subdir in SERVABLE_SUBDIRS:
            (self.root / subdir).mkdir(parents=True, exist_ok=True)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

    def dir_for(self, kind: MediaKind) -> Path:
        return self.root / kind.subdir

    @property
    def thumbnails_dir(self) -> Path:
        return self.root / THUMBNAILS_SUBDIR

    def new_identifier(self) -> str:
        while True:
            candidate = secrets.token_urlsafe(IDENTIFIER_BYTES)
            # The id doubles as a filename stem, so a leading dash or dot is avoided
            if candidate[0] in "-.":
                continue
            if not self._identifier_taken(candidate):
                return candidate

    def _identifier_taken(self, identifier: str) -> bool:
        for subdir in SERVABLE_SUBDIRS:
            directory = self.root / subdir
            if directory.exists() and any(directory.glob(f"{identifier}.*")):
                return True
        return False

    def temp_path(self, name: str) -> Path:
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        return self.temp_dir / name

    def write_atomic(self, destination: Path, data: bytes) -> Path:
        destination.parent.mkdir(parents=True, exist_ok=True)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

        # Write next to the storage tree (same filesystem) so the rename is atomic
        fd, tmp_name = tempfile.mkstemp(dir=self.temp_dir, prefix=f"{destination.stem}_", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, destination)
        except BaseException:
            self.unlink_quietly(Path(tmp_name), "partial write")
            raise
        return destination

    def move_into_place(self, source: Path, destination: Path) -> Path:
        destination.parent.mkdir(parents=True, exist_ok=True)
        os.replace(source, destination)
        return destination

    def resolve(self, subdir: str, filename: str) -> Path:
        if subdir not in SERVABLE_SUBDIRS:
            raise BadRequestError(f"Invalid file type: {subdir}")

        # Only a bare filename component is accepted
        sanitized = Path(filename).name
        if (
            not sanitized
            or sanitized != filename
            or sanitized in {".", ".."}
            or sanitized.startswith(".")
            or "\\" in filename
        ):
            raise BadRequestError("Invalid filename")

        return self.root / subdir / sanitized

    def list_files(self, kind: MediaKind) -> List[Path]:
        directory = self.dir_for(kind)
        if not directory.exists():
            return []
        return [p for p in directory.iterdir() if p.is_file() and not p.name.startswith(".")]

    def delete(self, subdir: str, filename: str) -> Path:
        path = self.resolve(subdir, filename)
        try:
            path.unlink()
        except FileNotFoundError:
            raise FileNotFoundInStorageError("File not found", {"filename": filename}) from None
        return path

    def unlink_quietly(self, path: Path, what: str) -> bool:
        """
        Best-effort removal. The failure is logged, never raised, so the
        primary operation is not failed over cleanup.
        """
        try:
            path.unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.warning(f"Could not delete {what} at {path}: {e}")
            return False

    def directory_stats(self, subdir: str) -> Tuple[int, int]:
        directory = self.root / subdir
        count = 0
        total = 0
        if not directory.exists():
            return 0, 0
        for dirpath, _dirnames, filenames in os.walk(directory):
            for name in filenames:
                try:
                    total += (Path(dirpath) / name).stat().st_size
                    count += 1
                except OSError:
                    # Removed between walk and stat
                    continue
        return count, total

    def cleanup_orphaned_temp_files(self, max_age_seconds: float) -> int:
        """Deletes temp files older than max_age_seconds. Returns how many were removed."""
        if not self.temp_dir.exists():
            return 0

        cutoff = time.time() - max_age_seconds
        removed = 0
        for path in self.temp_dir.iterdir():
            try:
                if path.is_file() and path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
                    logger.info(f"Cleaned up orphaned temp file: {path.name}")
            except OSError as e:
                logger.warning(f"Failed to clean up temp file {path.name}: {e}")
        return removed
