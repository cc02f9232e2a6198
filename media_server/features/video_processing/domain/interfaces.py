from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from .models import CommandResult, TranscodeResult, VideoCodecInfo, VideoMetadata


class CommandError(Exception):
    """The command could not be run to completion (missing binary, timeout)."""


class CommandTimeoutError(CommandError):
    pass


class ICommandRunner(ABC):
    """
    Runs an external program and captures its output.
    Cancelling the awaiting task kills the child process.
    """
    @abstractmethod
    async def run(self, args: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
        """
        Raises:
            CommandError: If the process cannot be spawned.
            CommandTimeoutError: If it outlives `timeout` (the process is killed).
        """
        pass


class IVideoProber(ABC):
    @abstractmethod
    async def analyze_codecs(self, path: Path, mime_type: str) -> VideoCodecInfo:
        """Never raises; unknown results are reported as not web compatible."""
        pass

    @abstractmethod
    async def extract_metadata(self, path: Path, mime_type: str) -> VideoMetadata:
        """Never raises; fields that could not be probed are left empty."""
        pass


class IVideoTranscoder(ABC):
    @abstractmethod
    async def transcode(self, input_path: Path, output_path: Path) -> TranscodeResult:
        """
        Re-encodes to H.264/AAC MP4 and deletes the input on success.

        Raises:
            TranscodeError: On failure; any partial output is removed first.
        """
        pass

    @abstractmethod
    async def extract_poster(self, video_path: Path, output_path: Path) -> Optional[Path]:
        """Writes a single JPEG frame. Returns None when no frame could be produced."""
        pass
