import logging
from pathlib import Path
from typing import Dict, List, Tuple

from media_server.core.common.enums import MediaKind
from media_server.core.errors import BadRequestError, FileNotFoundInStorageError
from media_server.features.dedup_index.service.api import DuplicateIndex
from media_server.features.disk_guard.service.api import DiskCapacityGuard
from media_server.features.storage.domain.models import (
    SERVABLE_SUBDIRS,
    StoredFile,
    THUMBNAILS_SUBDIR,
    parse_file_url,
)
from media_server.features.storage.service.api import StorageService
from ..domain.models import DirectoryUsage, format_bytes

logger = logging.getLogger(__name__)

DELETABLE_SUBDIRS = (MediaKind.IMAGE.subdir, MediaKind.VIDEO.subdir)


class MediaLibrary:
    """
    Read and delete side of storage: listing, deletion, usage statistics,
    and resolving public URLs back to stored files.
    """

    def __init__(
        self,
        storage: StorageService,
        index: DuplicateIndex,
        guard: DiskCapacityGuard,
        max_file_size_mb: int = 500,
        video_space_multiplier: float = 2.5,
    ):
        self.storage = storage
        self.index = index
        self.guard = guard
        self.max_file_size_mb = max_file_size_mb
        self.video_space_multiplier = video_space_multiplier

    def list(self) -> Dict[str, object]:
        images = self._stored_files(MediaKind.IMAGE)
        videos = self._stored_files(MediaKind.VIDEO)
        return {
            "images": [f.to_dict() for f in images],
            "videos": [f.to_dict() for f in videos],
            "total": len(images) + len(videos),
        }

    def _stored_files(self, kind: MediaKind) -> List[StoredFile]:
        files = []
        for path in self.storage.fs.list_files(kind):
            try:
                files.append(self.storage.stored_file(path, kind))
            except FileNotFoundError:
                # Deleted while listing
                continue
        files.sort(key=lambda f: f.modified_at, reverse=True)
        return files

    def delete(self, subdir: str, filename: str) -> Dict[str, object]:
        if subdir not in DELETABLE_SUBDIRS:
            raise BadRequestError(f"Invalid file type: {subdir}")

        path = self.storage.fs.delete(subdir, filename)
        logger.info(f"Deleted {subdir}/{filename}")

        try:
            self.index.remove_by_filename(filename)
        except Exception as e:
            # The file is already gone; a stale entry is re-ingested on the next upload
            logger.warning(f"Failed to remove index entry for {filename}: {e}")

        if subdir == MediaKind.VIDEO.subdir:
            self.storage.fs.unlink_quietly(self.storage.thumbnail_path(path.stem), "video poster")

        return {"success": True, "deleted": filename}

    def stats(self) -> Dict[str, object]:
        disk = self.guard.disk_usage()

        usage = {}
        total_count = 0
        total_size = 0
        for subdir in SERVABLE_SUBDIRS:
            count, size = self.storage.fs.directory_stats(subdir)
            usage[subdir] = DirectoryUsage(count, size).to_dict()
            total_count += count
            total_size += size
        usage["total"] = DirectoryUsage(total_count, total_size).to_dict()

        return {
            "disk": {
                "total": disk.total,
                "totalFormatted": format_bytes(disk.total),
                "free": disk.free,
                "freeFormatted": format_bytes(disk.free),
                "used": disk.used,
                "usedFormatted": format_bytes(disk.used),
                "usedPercent": disk.used_percent,
            },
            "storage": usage,
            "index": {"entries": len(self.index)},
            "config": {
                "minFreeSpaceMB": self.guard.min_free_bytes // (1024 * 1024),
                "maxFileSizeMB": self.max_file_size_mb,
                "videoSpaceMultiplier": self.video_space_multiplier,
            },
        }

    def resolve_url(self, url: str, kind: MediaKind) -> Tuple[MediaKind, Path]:
        """
        Maps a public file URL to the stored path.
        Raises BadRequestError for malformed URLs or a kind mismatch,
        FileNotFoundInStorageError when nothing is stored there.
        """
        try:
            subdir, filename = parse_file_url(url)
        except ValueError as e:
            raise BadRequestError(str(e)) from None

        if subdir == THUMBNAILS_SUBDIR:
            raise BadRequestError("Thumbnails have no metadata")

        path = self.storage.fs.resolve(subdir, filename)
        stored_kind = MediaKind.from_subdir(subdir)
        if stored_kind is not kind:
            raise BadRequestError(
                f"URL points at a {stored_kind.value}, not a {kind.value}",
                {"expected": kind.value, "actual": stored_kind.value},
            )
        if not path.is_file():
            raise FileNotFoundInStorageError("File not found", {"url": url})
        return stored_kind, path
