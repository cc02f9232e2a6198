from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from media_server.core.common.enums import Orientation

WEB_VIDEO_MIME_TYPE = "video/mp4"


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an external command that was spawned and ran to completion."""
    args: Sequence[str]
    returncode: int
    stdout: bytes
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True)
class TranscodeConfig:
    """
    Fixed encoder parameters for web playback.
    Defaults target visually lossless H.264.
    """
    crf: int = 18
    preset: str = "slow"
    audio_bitrate: str = "256k"
    pixel_format: str = "yuv420p"


@dataclass(frozen=True)
class VideoCodecInfo:
    container: str
    video_codec: Optional[str]
    audio_codec: Optional[str]
    is_web_compatible: bool

    @classmethod
    def unknown(cls) -> "VideoCodecInfo":
        return cls(container="unknown", video_codec=None, audio_codec=None, is_web_compatible=False)


@dataclass(frozen=True)
class TranscodeResult:
    output_path: Path
    transcoded: bool
    original_deleted: bool
    output_mime_type: str = WEB_VIDEO_MIME_TYPE


@dataclass
class VideoMetadata:
    mime_type: str
    width: Optional[int] = None
    height: Optional[int] = None
    duration: Optional[float] = None
    codec: Optional[str] = None
    frame_rate: Optional[float] = None
    orientation: Optional[Orientation] = None
    transcoded: bool = False
    original_mime_type: Optional[str] = None
    thumbnail_url: Optional[str] = None
    lqip: Optional[str] = None

    def to_dict(self) -> dict:
        out = {
            "mimeType": self.mime_type,
            "width": self.width,
            "height": self.height,
            "duration": self.duration,
            "codec": self.codec,
            "frameRate": self.frame_rate,
            "orientation": self.orientation.value if self.orientation else None,
            "transcoded": self.transcoded,
            "originalMimeType": self.original_mime_type,
            "thumbnailUrl": self.thumbnail_url,
            "lqip": self.lqip,
        }
        return {k: v for k, v in out.items() if v is not None}
