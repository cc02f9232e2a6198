import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Optional, Set

from media_server.core.common.enums import IngestState, MediaKind
from media_server.core.errors import (
    InsufficientStorageError,
    MediaServerError,
    MetadataExtractionError,
    StorageIOError,
    UnsupportedMediaTypeError,
)
from media_server.features.dedup_index.domain.models import DuplicateIndexEntry
from media_server.features.dedup_index.service.api import DuplicateIndex
from media_server.features.disk_guard.service.api import DiskCapacityGuard
from media_server.features.image_metadata.service.api import ImageMetadataExtractor
from media_server.features.storage.service.api import StorageService
from media_server.features.video_processing.domain.models import VideoMetadata, WEB_VIDEO_MIME_TYPE
from media_server.features.video_processing.service.api import VideoProcessor

from ..data.sniffer import FiletypeSniffer, SNIFF_HEADER_BYTES
from ..domain.interfaces import IContentSniffer
from ..domain.models import (
    ALLOWED_IMAGE_TYPES,
    ALLOWED_VIDEO_TYPES,
    ImageIngestion,
    IngestionResult,
    SniffedType,
    UploadRequest,
    VideoIngestion,
)

logger = logging.getLogger(__name__)


class IngestionController:
    """
    Runs one upload through:
        received -> type-validated -> dedup-checked -> capacity-checked
        -> processing -> persisted -> indexed -> responded
    Any step may end in `error`; nothing is retried here.
    """

    def __init__(
        self,
        storage: StorageService,
        index: DuplicateIndex,
        guard: DiskCapacityGuard,
        images: ImageMetadataExtractor,
        videos: VideoProcessor,
        sniffer: Optional[IContentSniffer] = None,
        video_space_multiplier: float = 2.5,
    ):
        self.storage = storage
        self.index = index
        self.guard = guard
        self.images = images
        self.videos = videos
        self.sniffer = sniffer or FiletypeSniffer()
        self.video_space_multiplier = video_space_multiplier

        # Same-content uploads are processed one at a time so only one copy is stored
        self._hash_locks: Dict[str, asyncio.Lock] = {}
        self._hash_waiters: Dict[str, int] = {}
        self._reserved_ids: Set[str] = set()

    # --- Public API ---

    async def ingest(self, request: UploadRequest) -> IngestionResult:
        state = IngestState.RECEIVED
        try:
            sniffed = self._validate_type(request.data)
            kind = sniffed.kind
            state = IngestState.TYPE_VALIDATED

            file_hash = await asyncio.to_thread(self.storage.content_hash, request.data)

            async with self._hash_lock(file_hash):
                duplicate = await self._resolve_duplicate(file_hash, request.original_filename)
                if duplicate is not None:
                    logger.info(f"Duplicate upload of {file_hash[:12]} -> {duplicate.url}")
                    return duplicate
                state = IngestState.DEDUP_CHECKED

                await self._check_capacity(kind, len(request.data))
                state = IngestState.CAPACITY_CHECKED

                identifier = self._reserve_identifier()
                try:
                    state = IngestState.PROCESSING
                    if kind is MediaKind.IMAGE:
                        result = await self._ingest_image(identifier, sniffed, request)
                    elif kind is MediaKind.VIDEO:
                        result = await self._ingest_video(identifier, sniffed, request)
                    else:
                        raise TypeError(f"Unknown media kind: {kind}")
                    state = IngestState.PERSISTED

                    await self._index(file_hash, kind, result)
                    state = IngestState.INDEXED
                finally:
                    self._reserved_ids.discard(identifier)

            logger.info(
                f"Upload {IngestState.RESPONDED.value}: {kind.value} {result.id} ({result.size} bytes) "
                f"from '{request.original_filename}'"
            )
            return result

        except MediaServerError as e:
            logger.warning(f"Upload {state.value} -> {IngestState.ERROR.value}: [{e.reason}] {e.message}")
            raise
        except OSError as e:
            logger.exception(f"Upload {state.value} -> {IngestState.ERROR.value}: I/O failure")
            raise StorageIOError(f"Storage I/O failed: {e}") from e

    async def describe_stored(
        self,
        kind: MediaKind,
        path: Path,
        url: Optional[str] = None,
        original_filename: Optional[str] = None,
        duplicate: bool = False,
    ) -> IngestionResult:
        """
        Re-derives the response payload for a file already in storage,
        without writing anything.
        """
        header = await asyncio.to_thread(self._read_header, path)
        sniffed = self.sniffer.sniff(header)
        size = (await asyncio.to_thread(path.stat)).st_size
        identifier = path.stem
        url = url or self.storage.url_for(kind, path.name)

        if kind is MediaKind.IMAGE:
            metadata = await self.images.extract_file(path)
            details = ImageIngestion(metadata)
            mime_type = sniffed.mime_type or "application/octet-stream"
        elif kind is MediaKind.VIDEO:
            mime_type = sniffed.mime_type or WEB_VIDEO_MIME_TYPE
            video_meta = await self.videos.extract_metadata(path, mime_type)
            await self._attach_existing_poster(identifier, video_meta)
            details = VideoIngestion(video_meta)
        else:
            raise TypeError(f"Unknown media kind: {kind}")

        return IngestionResult(
            id=identifier,
            url=url,
            original_filename=original_filename,
            mime_type=mime_type,
            size=size,
            details=details,
            duplicate=duplicate,
        )

    # --- Steps ---

    def _validate_type(self, data: bytes) -> SniffedType:
        sniffed = self.sniffer.sniff(data)
        if sniffed.kind is None or not sniffed.extension:
            raise UnsupportedMediaTypeError(
                "Unsupported file type",
                {
                    "detected": sniffed.mime_type,
                    "allowed": {
                        "images": sorted(ALLOWED_IMAGE_TYPES),
                        "videos": sorted(ALLOWED_VIDEO_TYPES),
                    },
                },
            )
        return sniffed

    async def _resolve_duplicate(self, file_hash: str, original_filename: str) -> Optional[IngestionResult]:
        entry = self.index.lookup(file_hash)
        if entry is None:
            return None

        path = self.storage.fs.dir_for(entry.kind) / entry.filename
        if not path.exists():
            logger.warning(f"Index entry {file_hash[:12]} points at missing {entry.filename}; re-ingesting")
            await asyncio.to_thread(self.index.remove, file_hash)
            return None

        return await self.describe_stored(
            entry.kind,
            path,
            url=entry.url,
            original_filename=original_filename,
            duplicate=True,
        )

    async def _check_capacity(self, kind: MediaKind, size: int) -> None:
        multiplier = self.video_space_multiplier if kind is MediaKind.VIDEO else 1
        required = int(size * multiplier)
        if not await asyncio.to_thread(self.guard.has_capacity, required):
            min_free_mb = self.guard.min_free_bytes // (1024 * 1024)
            raise InsufficientStorageError(
                "Insufficient storage space",
                {"message": f"Server requires at least {min_free_mb}MB free space"},
            )

    async def _ingest_image(self, identifier: str, sniffed: SniffedType, request: UploadRequest) -> IngestionResult:
        # Undeterminable dimensions fail here, before anything is written
        metadata = await self.images.extract_async(request.data)

        path = self.storage.final_path(MediaKind.IMAGE, identifier, sniffed.extension)
        await asyncio.to_thread(self.storage.fs.write_atomic, path, request.data)

        return IngestionResult(
            id=identifier,
            url=self.storage.url_for(MediaKind.IMAGE, path.name),
            original_filename=request.original_filename,
            mime_type=sniffed.mime_type,
            size=len(request.data),
            details=ImageIngestion(metadata),
        )

    async def _ingest_video(self, identifier: str, sniffed: SniffedType, request: UploadRequest) -> IngestionResult:
        fs = self.storage.fs
        upload_path = fs.temp_path(f"{identifier}_upload.{sniffed.extension}")
        transcode_path = fs.temp_path(f"{identifier}_transcoded.mp4")
        thumbnail_path = self.storage.thumbnail_path(identifier)
        final_path: Optional[Path] = None
        completed = False

        try:
            # Probing and transcoding tools work on paths, not buffers
            await asyncio.to_thread(fs.write_atomic, upload_path, request.data)

            codecs = await self.videos.analyze_codecs(upload_path, sniffed.mime_type)
            if codecs.is_web_compatible:
                final_path = self.storage.final_path(MediaKind.VIDEO, identifier, sniffed.extension)
                await asyncio.to_thread(fs.move_into_place, upload_path, final_path)
                mime_type = sniffed.mime_type
                transcoded = False
            else:
                result = await self.videos.transcode(upload_path, transcode_path)
                if not result.original_deleted:
                    logger.warning(f"Original upload {upload_path.name} left in temp storage after transcode")
                final_path = self.storage.final_path(MediaKind.VIDEO, identifier, "mp4")
                await asyncio.to_thread(fs.move_into_place, result.output_path, final_path)
                mime_type = result.output_mime_type
                transcoded = True

            metadata = await self.videos.extract_metadata(final_path, mime_type)
            metadata.transcoded = transcoded
            if transcoded:
                metadata.original_mime_type = sniffed.mime_type

            poster = await self.videos.extract_poster(final_path, thumbnail_path)
            if poster is not None:
                await self._attach_poster(identifier, poster, metadata)

            size = (await asyncio.to_thread(final_path.stat)).st_size
            completed = True
        finally:
            fs.unlink_quietly(upload_path, "video upload temp file")
            fs.unlink_quietly(transcode_path, "transcode temp file")
            if not completed:
                if final_path is not None:
                    fs.unlink_quietly(final_path, "incomplete video")
                fs.unlink_quietly(thumbnail_path, "incomplete poster")

        return IngestionResult(
            id=identifier,
            url=self.storage.url_for(MediaKind.VIDEO, final_path.name),
            original_filename=request.original_filename,
            mime_type=mime_type,
            size=size,
            details=VideoIngestion(metadata),
        )

    async def _index(self, file_hash: str, kind: MediaKind, result: IngestionResult) -> None:
        filename = result.url.rsplit("/", 1)[-1]
        entry = DuplicateIndexEntry(hash=file_hash, filename=filename, kind=kind, url=result.url)
        try:
            await asyncio.to_thread(self.index.upsert, entry)
        except Exception as e:
            # Don't leave an unindexed copy behind: the next upload would store it again
            logger.exception(f"Index write failed for {filename}, removing stored file")
            self.storage.fs.unlink_quietly(self.storage.fs.dir_for(kind) / filename, "unindexed file")
            if kind is MediaKind.VIDEO:
                self.storage.fs.unlink_quietly(self.storage.thumbnail_path(result.id), "unindexed poster")
            raise StorageIOError(f"Failed to update duplicate index: {e}") from e

    # --- Helpers ---

    async def _attach_poster(self, identifier: str, poster: Path, metadata: VideoMetadata) -> None:
        metadata.thumbnail_url = self.storage.thumbnail_url(identifier)
        try:
            metadata.lqip = await self.images.lqip_for_file(poster)
        except MetadataExtractionError as e:
            logger.warning(f"Poster placeholder failed for {identifier}: {e.message}")

    async def _attach_existing_poster(self, identifier: str, metadata: VideoMetadata) -> None:
        poster = self.storage.thumbnail_path(identifier)
        if await asyncio.to_thread(poster.exists):
            await self._attach_poster(identifier, poster, metadata)

    def _reserve_identifier(self) -> str:
        while True:
            identifier = self.storage.fs.new_identifier()
            if identifier not in self._reserved_ids:
                self._reserved_ids.add(identifier)
                return identifier

    @asynccontextmanager
    async def _hash_lock(self, file_hash: str):
        lock = self._hash_locks.setdefault(file_hash, asyncio.Lock())
        self._hash_waiters[file_hash] = self._hash_waiters.get(file_hash, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._hash_waiters[file_hash] -= 1
            if self._hash_waiters[file_hash] == 0:
                del self._hash_waiters[file_hash]
                del self._hash_locks[file_hash]

    @staticmethod
    def _read_header(path: Path) -> bytes:
        with open(path, "rb") as f:
            return f.read(SNIFF_HEADER_BYTES)
