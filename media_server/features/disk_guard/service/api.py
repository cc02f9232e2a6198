import logging
from pathlib import Path
from typing import Optional

from ..data.statvfs import LocalDiskStats
from ..domain.interfaces import IDiskStats
from ..domain.models import DiskUsage

logger = logging.getLogger(__name__)


class DiskCapacityGuard:
    """
    Admission control on free disk space.
    Any safety multiplier is applied by the caller, not here.
    """

    def __init__(self, root: Path, min_free_bytes: int, stats: Optional[IDiskStats] = None):
        self.root = Path(root)
        self.min_free_bytes = min_free_bytes
        self.stats = stats or LocalDiskStats()

    def disk_usage(self) -> DiskUsage:
        try:
            return self.stats.usage(self.root)
        except OSError as e:
            # Fail closed: zero capacity rejects the upload
            logger.warning(f"Disk statistics unavailable for {self.root}: {e}")
            return DiskUsage.unknown()

    def has_capacity(self, required_bytes: int) -> bool:
        free = self.disk_usage().free
        ok = free - required_bytes > self.min_free_bytes
        if not ok:
            logger.warning(
                f"Capacity check failed: need {required_bytes} bytes, "
                f"{free} free, floor {self.min_free_bytes}"
            )
        return ok
