import logging
from dataclasses import dataclass
from typing import Optional

from media_server.core.config.settings import Settings
from media_server.core.security.rate_limiter import RateLimiter, RateLimitRule
from media_server.features.dedup_index.service.api import DuplicateIndex
from media_server.features.disk_guard.domain.interfaces import IDiskStats
from media_server.features.disk_guard.service.api import DiskCapacityGuard
from media_server.features.image_metadata.service.api import ImageMetadataExtractor
from media_server.features.ingestion.service.controller import IngestionController
from media_server.features.library.service.api import MediaLibrary
from media_server.features.storage.service.api import StorageService
from media_server.features.video_processing.domain.interfaces import ICommandRunner
from media_server.features.video_processing.service.api import VideoProcessor

logger = logging.getLogger(__name__)

UPLOAD_RULE = "upload"
API_RULE = "api"


@dataclass
class MediaServices:
    """Everything a request handler needs, wired once per application."""
    settings: Settings
    storage: StorageService
    index: DuplicateIndex
    guard: DiskCapacityGuard
    images: ImageMetadataExtractor
    videos: VideoProcessor
    ingestion: IngestionController
    library: MediaLibrary
    limiter: RateLimiter

    @classmethod
    def build(
        cls,
        settings: Settings,
        disk_stats: Optional[IDiskStats] = None,
        command_runner: Optional[ICommandRunner] = None,
    ) -> "MediaServices":
        storage = StorageService(settings.UPLOAD_DIR, settings.PUBLIC_URL)
        index = DuplicateIndex.from_url(settings.INDEX_DATABASE_URL)
        guard = DiskCapacityGuard(settings.UPLOAD_DIR, settings.MIN_FREE_SPACE_BYTES, stats=disk_stats)
        images = ImageMetadataExtractor()
        videos = VideoProcessor.from_settings(settings, runner=command_runner)

        ingestion = IngestionController(
            storage=storage,
            index=index,
            guard=guard,
            images=images,
            videos=videos,
            video_space_multiplier=settings.VIDEO_SPACE_MULTIPLIER,
        )
        library = MediaLibrary(
            storage=storage,
            index=index,
            guard=guard,
            max_file_size_mb=settings.MAX_FILE_SIZE_MB,
            video_space_multiplier=settings.VIDEO_SPACE_MULTIPLIER,
        )
        limiter = RateLimiter([
            RateLimitRule(UPLOAD_RULE, settings.UPLOAD_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS),
            RateLimitRule(API_RULE, settings.API_RATE_LIMIT, settings.RATE_LIMIT_WINDOW_SECONDS),
        ])

        return cls(
            settings=settings,
            storage=storage,
            index=index,
            guard=guard,
            images=images,
            videos=videos,
            ingestion=ingestion,
            library=library,
            limiter=limiter,
        )

    def close(self) -> None:
        self.index.repo.close()
