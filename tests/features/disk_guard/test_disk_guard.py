import pytest

from conftest import FakeDiskStats
from media_server.features.disk_guard.data.statvfs import LocalDiskStats
from media_server.features.disk_guard.domain.models import DiskUsage
from media_server.features.disk_guard.service.api import DiskCapacityGuard

MB = 1024 * 1024


def test_capacity_uses_strict_floor(tmp_path):
    guard = DiskCapacityGuard(tmp_path, min_free_bytes=500 * MB, stats=FakeDiskStats(free=1000 * MB))

    assert guard.has_capacity(100 * MB) is True
    # Exactly at the floor is not enough
    assert guard.has_capacity(500 * MB) is False
    assert guard.has_capacity(600 * MB) is False


def test_stats_failure_rejects_uploads(tmp_path):
    guard = DiskCapacityGuard(tmp_path, min_free_bytes=0, stats=FakeDiskStats(error=True))

    assert guard.has_capacity(1) is False
    assert guard.disk_usage() == DiskUsage.unknown()


def test_used_percent_rounding():
    usage = DiskUsage(total=3 * MB, free=2 * MB, used=1 * MB)

    assert usage.used_percent == 33.3
    assert DiskUsage.unknown().used_percent == 0.0


def test_local_disk_stats_reads_real_volume(tmp_path):
    usage = LocalDiskStats().usage(tmp_path)

    assert usage.total > 0
    assert 0 <= usage.free <= usage.total


def test_local_disk_stats_missing_path_raises(tmp_path):
    with pytest.raises(OSError):
        LocalDiskStats().usage(tmp_path / "does" / "not" / "exist")
