import logging
from pathlib import Path
from typing import Optional

from ..data.command_runner import AsyncCommandRunner
from ..data.ffmpeg_adapter import FFmpegAdapter
from ..data.ffprobe_adapter import FFprobeAdapter
from ..domain.interfaces import ICommandRunner
from ..domain.models import TranscodeConfig, TranscodeResult, VideoCodecInfo, VideoMetadata

logger = logging.getLogger(__name__)


class VideoProcessor:
    """
    Facade for the video feature: codec analysis, transcoding, probing, posters.
    """

    def __init__(
        self,
        ffmpeg_binary: str = "ffmpeg",
        ffprobe_binary: str = "ffprobe",
        config: Optional[TranscodeConfig] = None,
        probe_timeout: float = 30.0,
        transcode_timeout: float = 1800.0,
        poster_timeout: float = 60.0,
        runner: Optional[ICommandRunner] = None,
    ):
        runner = runner or AsyncCommandRunner()
        self.prober = FFprobeAdapter(runner, ffprobe_binary, probe_timeout)
        self.transcoder = FFmpegAdapter(
            runner,
            ffmpeg_binary,
            config,
            transcode_timeout=transcode_timeout,
            poster_timeout=poster_timeout,
        )

    @classmethod
    def from_settings(cls, settings, runner: Optional[ICommandRunner] = None) -> "VideoProcessor":
        return cls(
            ffmpeg_binary=settings.FFMPEG_BINARY,
            ffprobe_binary=settings.FFPROBE_BINARY,
            config=TranscodeConfig(
                crf=settings.TRANSCODE_CRF,
                preset=settings.TRANSCODE_PRESET,
                audio_bitrate=settings.TRANSCODE_AUDIO_BITRATE,
            ),
            probe_timeout=settings.PROBE_TIMEOUT_SECONDS,
            transcode_timeout=settings.TRANSCODE_TIMEOUT_SECONDS,
            poster_timeout=settings.THUMBNAIL_TIMEOUT_SECONDS,
            runner=runner,
        )

    async def analyze_codecs(self, path: Path, mime_type: str) -> VideoCodecInfo:
        return await self.prober.analyze_codecs(path, mime_type)

    async def transcode(self, input_path: Path, output_path: Path) -> TranscodeResult:
        return await self.transcoder.transcode(input_path, output_path)

    async def extract_metadata(self, path: Path, mime_type: str) -> VideoMetadata:
        return await self.prober.extract_metadata(path, mime_type)

    async def extract_poster(self, video_path: Path, output_path: Path) -> Optional[Path]:
        return await self.transcoder.extract_poster(video_path, output_path)

    async def check_tools(self) -> dict:
        status = {
            "ffmpeg": await self.transcoder.check_available(),
            "ffprobe": await self.prober.check_available(),
        }
        for tool, available in status.items():
            if not available:
                logger.warning(f"{tool} not available: videos will be stored without transcoding checks")
        return status
