from dataclasses import dataclass

@dataclass(frozen=True)
class DiskUsage:
    """Filesystem statistics for the storage root, in bytes."""
    total: int
    free: int
    used: int

    @property
    def used_percent(self) -> float:
        if self.total <= 0:
            return 0.0
        return round(self.used / self.total * 100, 1)

    @classmethod
    def unknown(cls) -> "DiskUsage":
        return cls(total=0, free=0, used=0)
