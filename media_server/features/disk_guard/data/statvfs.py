import os
import shutil
from pathlib import Path
from ..domain.interfaces import IDiskStats
from ..domain.models import DiskUsage

class LocalDiskStats(IDiskStats):
    def usage(self, path: Path) -> DiskUsage:
        if hasattr(os, "statvfs"):
            stats = os.statvfs(path)
            total = stats.f_blocks * stats.f_frsize
            # f_bavail: blocks available to unprivileged writers like this service
            free = stats.f_bavail * stats.f_frsize
            return DiskUsage(total=total, free=free, used=total - free)

        usage = shutil.disk_usage(path)
        return DiskUsage(total=usage.total, free=usage.free, used=usage.total - usage.free)
