from collections.abc import Iterable
from typing import Any

from kubectl_explain_storage.fields import nested_string
from kubectl_explain_storage.records import Disk, Volume
from kubectl_explain_storage.units import ByteSize

WARNING_PERCENT = 60.0
CRITICAL_PERCENT = 80.0


def percent_used(maximum: float, available: float) -> float:
    """
    Share of a disk's capacity that is no longer available.
    Zero when the disk reports no capacity, otherwise clamped to [0, 100].
    """
    if maximum <= 0:
        return 0.0
    used = 100.0 * (maximum - available) / maximum
    return min(100.0, max(0.0, used))


def usage_level(percent: float) -> str:
    if percent > CRITICAL_PERCENT:
        return "critical"
    if percent > WARNING_PERCENT:
        return "warning"
    return "ok"


def tags_satisfied(required: Iterable[str], disk: Disk) -> bool:
    return set(required) <= set(disk.tags)


def disk_pool_satisfying(
    required: Iterable[str], disks: Iterable[Disk]
) -> tuple[int, ByteSize]:
    """
    Count the disks carrying every required tag and sum their free space.
    """
    required = set(required)
    count = 0
    available = ByteSize(0)
    for disk in disks:
        if tags_satisfied(required, disk):
            count += 1
            available += disk.storage_available
    return count, available


def active_replica_count(
    state: str, robustness: str, replicas: dict[str, Any]
) -> tuple[int, bool]:
    """
    Count RW-mode entries of a volume's status.replicas map.

    Returns (count, inferred). An attached, healthy volume with no visible
    RW replica is assumed to have one; inferred is True in that case.
    """
    active = 0
    for replica in replicas.values():
        mode, found = nested_string(replica, "mode")
        if found and mode == "RW":
            active += 1

    if active == 0 and state == "attached" and robustness == "healthy":
        return 1, True
    return active, False


def volumes_by_disk_tag(volumes: Iterable[Volume]) -> list[Volume]:
    return [v for v in volumes if v.disk_selector]
