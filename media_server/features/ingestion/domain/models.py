from dataclasses import dataclass
from typing import Optional, Union

from media_server.core.common.enums import MediaKind
from media_server.features.image_metadata.domain.models import ImageMetadata
from media_server.features.video_processing.domain.models import VideoMetadata

ALLOWED_IMAGE_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/avif",
    "image/heic",
    "image/heif",
})

ALLOWED_VIDEO_TYPES = frozenset({
    "video/mp4",
    "video/quicktime",
    "video/webm",
    "video/x-msvideo",
    "video/x-matroska",
})


@dataclass(frozen=True)
class SniffedType:
    """Content type detected from the bytes themselves."""
    mime_type: Optional[str]
    extension: Optional[str]

    @property
    def kind(self) -> Optional[MediaKind]:
        if self.mime_type in ALLOWED_IMAGE_TYPES:
            return MediaKind.IMAGE
        if self.mime_type in ALLOWED_VIDEO_TYPES:
            return MediaKind.VIDEO
        return None


@dataclass(frozen=True)
class UploadRequest:
    data: bytes
    original_filename: str

    def __post_init__(self):
        if not self.data:
            raise ValueError("Upload is empty.")


@dataclass(frozen=True)
class ImageIngestion:
    metadata: ImageMetadata


@dataclass(frozen=True)
class VideoIngestion:
    metadata: VideoMetadata


MediaDetails = Union[ImageIngestion, VideoIngestion]


@dataclass(frozen=True)
class IngestionResult:
    """
    Response payload for an upload or a metadata lookup.
    `details` is the kind-specific part; it is matched exhaustively in to_dict.
    """
    id: str
    url: str
    original_filename: Optional[str]
    mime_type: str
    size: int
    details: MediaDetails
    duplicate: bool = False

    @property
    def kind(self) -> MediaKind:
        if isinstance(self.details, ImageIngestion):
            return MediaKind.IMAGE
        if isinstance(self.details, VideoIngestion):
            return MediaKind.VIDEO
        raise TypeError(f"Unknown media details: {type(self.details).__name__}")

    def to_dict(self) -> dict:
        if isinstance(self.details, ImageIngestion):
            specific = self.details.metadata.to_dict()
        elif isinstance(self.details, VideoIngestion):
            specific = self.details.metadata.to_dict()
            # The top-level mimeType already reflects any transcode
            specific.pop("mimeType", None)
        else:
            raise TypeError(f"Unknown media details: {type(self.details).__name__}")

        payload = {
            "success": True,
            "id": self.id,
            "url": self.url,
            "originalFilename": self.original_filename,
            "mimeType": self.mime_type,
            "size": self.size,
            "type": self.kind.value,
            **specific,
        }
        if self.duplicate:
            payload["duplicate"] = True
        return payload
