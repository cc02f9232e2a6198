# File: tests/conftest.py

import io
import json
import os
import shutil
import sys
from fractions import Fraction
from pathlib import Path

import pytest
from PIL import Image, ExifTags
from PIL.TiffImagePlugin import IFDRational

# 1. Add project root to path
sys.path.append(os.getcwd())

from media_server.core.config.settings import Settings
from media_server.features.disk_guard.domain.interfaces import IDiskStats
from media_server.features.disk_guard.domain.models import DiskUsage
from media_server.features.video_processing.domain.interfaces import CommandError, ICommandRunner
from media_server.features.video_processing.domain.models import CommandResult

GB = 1024 ** 3

HAS_FFMPEG = shutil.which("ffmpeg") is not None and shutil.which("ffprobe") is not None
requires_ffmpeg = pytest.mark.skipif(not HAS_FFMPEG, reason="ffmpeg/ffprobe not installed")

# Smallest ISO-BMFF headers that content sniffing recognises
MP4_HEADER = b"\x00\x00\x00\x18ftypisom\x00\x00\x02\x00isomiso2"
MOV_HEADER = b"\x00\x00\x00\x14ftypqt  \x00\x00\x02\x00qt  "


# --- Fakes ---

class FakeDiskStats(IDiskStats):
    def __init__(self, free: int = 100 * GB, total: int = 200 * GB, error: bool = False):
        self.free = free
        self.total = total
        self.error = error

    def usage(self, path: Path) -> DiskUsage:
        if self.error:
            raise OSError("statvfs failed")
        return DiskUsage(total=self.total, free=self.free, used=self.total - self.free)


def h264_probe(container: str = "mov,mp4,m4a,3gp,3g2,mj2", video: str = "h264", audio="aac",
               width: int = 1920, height: int = 1080) -> dict:
    streams = [{
        "codec_type": "video",
        "codec_name": video,
        "width": width,
        "height": height,
        "r_frame_rate": "30000/1001",
    }]
    if audio:
        streams.append({"codec_type": "audio", "codec_name": audio})
    return {"format": {"format_name": container, "duration": "12.500000"}, "streams": streams}


class FakeCommandRunner(ICommandRunner):
    """
    Stands in for ffmpeg/ffprobe.
    ffprobe answers with `probe` (None = probe failure); ffmpeg writes its
    output file unless `ffmpeg_returncode` is non-zero.
    """

    def __init__(self, probe=None, ffmpeg_returncode: int = 0, ffmpeg_stderr: str = "",
                 poster_ok: bool = True, missing_tools: bool = False):
        self.probe = probe
        self.ffmpeg_returncode = ffmpeg_returncode
        self.ffmpeg_stderr = ffmpeg_stderr
        self.poster_ok = poster_ok
        self.missing_tools = missing_tools
        self.calls = []

    def commands(self, binary: str):
        return [c for c in self.calls if Path(c[0]).name == binary]

    async def run(self, args, timeout=None) -> CommandResult:
        args = list(args)
        self.calls.append(args)
        if self.missing_tools:
            raise CommandError(f"Could not start {args[0]}: No such file or directory")

        binary = Path(args[0]).name
        if "-version" in args:
            return CommandResult(args, 0, f"{binary} version fake".encode(), "")

        if binary == "ffprobe":
            if self.probe is None:
                return CommandResult(args, 1, b"", "Invalid data found when processing input")
            return CommandResult(args, 0, json.dumps(self.probe).encode(), "")

        output = Path(args[-1])
        if "-frames:v" in args:
            if not self.poster_ok:
                return CommandResult(args, 1, b"", "Output file is empty")
            Image.new("RGB", (64, 36), (200, 40, 40)).save(output, format="JPEG")
            return CommandResult(args, 0, b"", "")

        if self.ffmpeg_returncode != 0:
            output.write_bytes(b"partial")
            return CommandResult(args, self.ffmpeg_returncode, b"", self.ffmpeg_stderr)

        output.write_bytes(MP4_HEADER + b"\x00" * 256)
        return CommandResult(args, 0, b"", "")


# --- Payload builders ---

def make_jpeg(width: int = 64, height: int = 48, color=(30, 120, 200), exif=None) -> bytes:
    buffer = io.BytesIO()
    image = Image.new("RGB", (width, height), color)
    if exif is not None:
        image.save(buffer, format="JPEG", exif=exif)
    else:
        image.save(buffer, format="JPEG")
    return buffer.getvalue()


def make_png(width: int = 40, height: int = 80) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), (0, 255, 0, 128)).save(buffer, format="PNG")
    return buffer.getvalue()


def _rational(value) -> IFDRational:
    fraction = Fraction(value).limit_denominator(10000)
    return IFDRational(fraction.numerator, fraction.denominator)


def make_exif(lat=(59, 55, 27), lat_ref="N", lon=(10, 45, 30), lon_ref="E", alt=None,
              with_camera: bool = True) -> Image.Exif:
    # Sub-IFDs are assigned as plain dicts; Pillow serialises them on save
    exif = Image.Exif()
    if with_camera:
        exif[ExifTags.Base.Make] = "FUJIFILM"
        exif[ExifTags.Base.Model] = "X-T4"
        exif[ExifTags.Base.DateTime] = "2024:01:15 14:30:00"
        exif[ExifTags.IFD.Exif] = {
            ExifTags.Base.DateTimeOriginal: "2024:01:15 14:30:00",
            ExifTags.Base.LensModel: "XF23mmF2 R WR",
            ExifTags.Base.FocalLength: _rational(23),
            ExifTags.Base.FNumber: _rational(2),
            ExifTags.Base.ISOSpeedRatings: 400,
            ExifTags.Base.ExposureTime: _rational(Fraction(1, 250)),
        }

    if lat is not None:
        gps = {
            ExifTags.GPS.GPSLatitudeRef: lat_ref,
            ExifTags.GPS.GPSLatitude: tuple(_rational(v) for v in lat),
            ExifTags.GPS.GPSLongitudeRef: lon_ref,
            ExifTags.GPS.GPSLongitude: tuple(_rational(v) for v in lon),
        }
        if alt is not None:
            gps[ExifTags.GPS.GPSAltitudeRef] = 0 if alt >= 0 else 1
            gps[ExifTags.GPS.GPSAltitude] = _rational(abs(alt))
        exif[ExifTags.IFD.GPSInfo] = gps
    return exif


def make_mp4_payload(tag: bytes = b"") -> bytes:
    return MP4_HEADER + tag + b"\x00" * 512


def make_mov_payload(tag: bytes = b"") -> bytes:
    return MOV_HEADER + tag + b"\x00" * 512


# --- Fixtures ---

@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at a throwaway storage root."""
    s = Settings()
    s.UPLOAD_DIR = tmp_path / "uploads"
    s.PUBLIC_URL = "http://media.test"
    s.API_KEY = ""
    s.INDEX_DATABASE_URL = ""
    s.FFMPEG_BINARY = "ffmpeg"
    s.FFPROBE_BINARY = "ffprobe"
    s.MIN_FREE_SPACE_MB = 500
    s.MAX_FILE_SIZE_MB = 500
    s.ensure_dirs()
    return s


@pytest.fixture
def disk_stats():
    return FakeDiskStats()


@pytest.fixture
def command_runner():
    return FakeCommandRunner(probe=h264_probe())


@pytest.fixture
def jpeg_bytes():
    return make_jpeg()


@pytest.fixture
def gps_jpeg_bytes():
    return make_jpeg(1920, 1080, exif=make_exif())
