import logging
from pathlib import Path
from typing import Optional

from media_server.core.errors import TranscodeError
from ..domain.interfaces import CommandError, ICommandRunner, IVideoTranscoder
from ..domain.models import TranscodeConfig, TranscodeResult

logger = logging.getLogger(__name__)

POSTER_MAX_WIDTH = 1280
POSTER_SEEK_SECONDS = (0.1, 0.0)


def _unlink_quietly(path: Path, what: str) -> bool:
    try:
        path.unlink(missing_ok=True)
        return True
    except OSError as e:
        logger.warning(f"Failed to delete {what} {path}: {e}")
        return False


class FFmpegAdapter(IVideoTranscoder):
    """
    Concrete transcoder using FFmpeg.
    Output is always H.264 + AAC in an MP4 with the moov atom up front.
    """

    def __init__(
        self,
        runner: ICommandRunner,
        binary: str = "ffmpeg",
        config: Optional[TranscodeConfig] = None,
        transcode_timeout: float = 1800.0,
        poster_timeout: float = 60.0,
    ):
        self.runner = runner
        self.binary = binary
        self.config = config or TranscodeConfig()
        self.transcode_timeout = transcode_timeout
        self.poster_timeout = poster_timeout

    def build_transcode_command(self, input_path: Path, output_path: Path) -> list:
        # -crf: constant quality, lower = better (18 = visually lossless)
        # -pix_fmt yuv420p: the only chroma layout every browser decodes
        # -movflags +faststart: playback can begin before the download finishes
        return [
            self.binary,
            "-i", str(input_path),
            "-c:v", "libx264",
            "-crf", str(self.config.crf),
            "-preset", self.config.preset,
            "-pix_fmt", self.config.pixel_format,
            "-c:a", "aac",
            "-b:a", self.config.audio_bitrate,
            "-movflags", "+faststart",
            "-y",
            str(output_path),
        ]

    async def transcode(self, input_path: Path, output_path: Path) -> TranscodeResult:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = self.build_transcode_command(input_path, output_path)

        logger.info(f"Transcoding: {' '.join(cmd)}")

        try:
            result = await self.runner.run(cmd, timeout=self.transcode_timeout)
        except CommandError as e:
            _unlink_quietly(output_path, "partial transcode output")
            logger.error(f"FFmpeg could not run: {e}")
            raise TranscodeError(f"FFmpeg spawn error: {e}") from e
        except BaseException:
            _unlink_quietly(output_path, "partial transcode output")
            raise

        if not result.ok:
            _unlink_quietly(output_path, "partial transcode output")
            logger.error(f"FFmpeg Transcode Failed. STDERR: {result.stderr}")
            raise TranscodeError(f"FFmpeg exited with code {result.returncode}: {result.stderr}")

        original_deleted = _unlink_quietly(input_path, "original after transcode")
        return TranscodeResult(
            output_path=output_path,
            transcoded=True,
            original_deleted=original_deleted,
        )

    async def extract_poster(self, video_path: Path, output_path: Path) -> Optional[Path]:
        output_path.parent.mkdir(parents=True, exist_ok=True)

        # Very short clips have no frame at 0.1s, so retry from the start
        for seek in POSTER_SEEK_SECONDS:
            cmd = [
                self.binary,
                "-ss", str(seek),
                "-i", str(video_path),
                "-frames:v", "1",
                "-vf", f"scale='min({POSTER_MAX_WIDTH},iw)':-2",
                "-q:v", "3",
                "-y",
                str(output_path),
            ]
            try:
                result = await self.runner.run(cmd, timeout=self.poster_timeout)
            except CommandError as e:
                logger.warning(f"Poster extraction failed for {video_path.name}: {e}")
                _unlink_quietly(output_path, "partial poster")
                return None

            if result.ok and output_path.exists() and output_path.stat().st_size > 0:
                return output_path

            _unlink_quietly(output_path, "partial poster")

        logger.warning(f"No poster frame could be extracted from {video_path.name}")
        return None

    async def check_available(self) -> bool:
        try:
            result = await self.runner.run([self.binary, "-version"], timeout=10)
        except CommandError:
            return False
        return result.ok
