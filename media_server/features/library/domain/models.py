from dataclasses import dataclass

BYTE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(num_bytes: int) -> str:
    """1536 -> '1.5 KB'. Base 1024, at most two decimals."""
    if num_bytes <= 0:
        return "0 B"

    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(BYTE_UNITS) - 1:
        value /= 1024
        unit += 1

    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {BYTE_UNITS[unit]}"


@dataclass(frozen=True)
class DirectoryUsage:
    count: int
    size: int

    def to_dict(self) -> dict:
        return {"count": self.count, "size": self.size, "sizeFormatted": format_bytes(self.size)}
