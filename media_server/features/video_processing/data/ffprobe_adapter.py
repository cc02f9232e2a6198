import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from media_server.core.common.enums import Orientation
from ..domain.interfaces import CommandError, ICommandRunner, IVideoProber
from ..domain.models import VideoCodecInfo, VideoMetadata, WEB_VIDEO_MIME_TYPE

logger = logging.getLogger(__name__)

WEB_COMPATIBLE_VIDEO_CODECS = {"h264", "avc1", "avc"}
WEB_COMPATIBLE_AUDIO_CODECS = {"aac", "mp4a"}


class ProbeError(Exception):
    pass


def _first_stream(probe: Dict[str, Any], codec_type: str) -> Optional[Dict[str, Any]]:
    for stream in probe.get("streams") or []:
        if stream.get("codec_type") == codec_type:
            return stream
    return None


def parse_frame_rate(value: Optional[str]) -> Optional[float]:
    """'30000/1001' -> 29.97"""
    if not value:
        return None
    try:
        num, _, den = value.partition("/")
        numerator = float(num)
        denominator = float(den) if den else 1.0
    except ValueError:
        return None
    if not numerator or not denominator:
        return None
    return round(numerator / denominator, 2)


def codec_info_from_probe(probe: Dict[str, Any], mime_type: str) -> VideoCodecInfo:
    format_name = (probe.get("format") or {}).get("format_name") or "unknown"
    container = format_name.split(",")[0]

    video_stream = _first_stream(probe, "video")
    audio_stream = _first_stream(probe, "audio")
    video_codec = (video_stream or {}).get("codec_name")
    audio_codec = (audio_stream or {}).get("codec_name")
    video_codec = video_codec.lower() if video_codec else None
    audio_codec = audio_codec.lower() if audio_codec else None

    # ffprobe names the whole ISO-BMFF family "mov,mp4,..."; the sniffed type tells them apart
    is_mp4_container = container == "mp4" or (container == "mov" and mime_type == WEB_VIDEO_MIME_TYPE)
    is_h264 = video_codec in WEB_COMPATIBLE_VIDEO_CODECS
    is_aac_or_silent = audio_codec is None or audio_codec in WEB_COMPATIBLE_AUDIO_CODECS

    return VideoCodecInfo(
        container=container,
        video_codec=video_codec,
        audio_codec=audio_codec,
        is_web_compatible=bool(is_mp4_container and is_h264 and is_aac_or_silent),
    )


def metadata_from_probe(probe: Dict[str, Any], mime_type: str) -> VideoMetadata:
    result = VideoMetadata(mime_type=mime_type)

    video_stream = _first_stream(probe, "video")
    if video_stream:
        width = video_stream.get("width")
        height = video_stream.get("height")
        result.width = int(width) if width else None
        result.height = int(height) if height else None
        result.codec = video_stream.get("codec_name")
        result.frame_rate = parse_frame_rate(video_stream.get("r_frame_rate"))

        if result.width and result.height:
            result.orientation = (
                Orientation.HORIZONTAL if result.width >= result.height else Orientation.VERTICAL
            )

    duration = (probe.get("format") or {}).get("duration")
    if duration is not None:
        try:
            result.duration = float(duration)
        except (TypeError, ValueError):
            pass

    return result


class FFprobeAdapter(IVideoProber):
    """
    Concrete prober using ffprobe's JSON output.
    Failures degrade instead of raising.
    """

    def __init__(self, runner: ICommandRunner, binary: str = "ffprobe", timeout: float = 30.0):
        self.runner = runner
        self.binary = binary
        self.timeout = timeout

    async def probe(self, path: Path) -> Dict[str, Any]:
        cmd = [
            self.binary,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(path),
        ]
        try:
            result = await self.runner.run(cmd, timeout=self.timeout)
        except CommandError as e:
            raise ProbeError(str(e)) from e

        if not result.ok:
            raise ProbeError(f"ffprobe exited with code {result.returncode}: {result.stderr}")

        try:
            probe = json.loads(result.stdout or b"{}")
        except ValueError as e:
            raise ProbeError(f"ffprobe returned invalid JSON: {e}") from e
        if not isinstance(probe, dict):
            raise ProbeError("ffprobe returned an unexpected document")
        return probe

    async def analyze_codecs(self, path: Path, mime_type: str) -> VideoCodecInfo:
        try:
            info = codec_info_from_probe(await self.probe(path), mime_type)
        except ProbeError as e:
            # Assume transcoding is required rather than accept an unplayable file
            logger.warning(f"Failed to analyze video codecs for {path.name}: {e}")
            return VideoCodecInfo.unknown()

        logger.info(
            f"Codecs for {path.name}: container={info.container} video={info.video_codec} "
            f"audio={info.audio_codec} web_compatible={info.is_web_compatible}"
        )
        return info

    async def extract_metadata(self, path: Path, mime_type: str) -> VideoMetadata:
        try:
            return metadata_from_probe(await self.probe(path), mime_type)
        except ProbeError as e:
            logger.warning(f"ffprobe failed, returning basic video metadata for {path.name}: {e}")
            return VideoMetadata(mime_type=mime_type)

    async def check_available(self) -> bool:
        try:
            result = await self.runner.run([self.binary, "-version"], timeout=10)
        except CommandError:
            return False
        return result.ok
