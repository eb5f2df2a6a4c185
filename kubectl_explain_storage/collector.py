import logging
from collections.abc import Iterable
from typing import Any

from kubectl_explain_storage.capacity import active_replica_count, percent_used
from kubectl_explain_storage.fields import (
    get_name,
    nested_float,
    nested_get,
    nested_int,
    nested_map,
    nested_string,
    nested_string_list,
)
from kubectl_explain_storage.records import Condition, Disk, Filters, Replica, Volume
from kubectl_explain_storage.units import ByteSize

logger = logging.getLogger(__name__)

REPLICA_ERROR_STATES = {"err", "error", "failed"}

# ----------------------------
# Shared helpers
# ----------------------------


def parse_conditions(raw: Any) -> list[Condition]:
    """
    Read a condition collection. Accepts the list form used by current
    CRDs and the older map form keyed by condition type.
    """
    if isinstance(raw, dict):
        items = []
        for cond_type, cond in raw.items():
            if isinstance(cond, dict):
                items.append({"type": cond_type, **cond})
    elif isinstance(raw, list):
        items = raw
    else:
        return []

    conditions = []
    for c in items:
        if not isinstance(c, dict):
            continue
        conditions.append(
            Condition(
                type=nested_string(c, "type")[0],
                status=nested_string(c, "status")[0],
                reason=nested_string(c, "reason")[0],
                message=nested_string(c, "message")[0],
                timestamp=nested_string(c, "lastTransitionTime")[0],
            )
        )
    return conditions


def volume_passes(volume: dict[str, Any], filters: Filters) -> bool:
    """
    Volume-name and disk-tag predicates, shared with the relationship resolver.
    """
    if filters.volume and get_name(volume) != filters.volume:
        return False
    if filters.disk_tag:
        selector, found = nested_string_list(volume, "spec", "diskSelector")
        if not found or filters.disk_tag not in selector:
            return False
    return True


def volumes_using_tag(volumes: Iterable[dict[str, Any]], tag: str) -> set[str]:
    """
    Names of volumes whose disk selector contains the tag.
    Replicas carry no tags, so tag filtering of replicas goes through this set.
    """
    using = set()
    for volume in volumes:
        selector, found = nested_string_list(volume, "spec", "diskSelector")
        if found and tag in selector:
            using.add(get_name(volume))
    return using


# ----------------------------
# Disks
# ----------------------------


def _disk_tags(disk_spec: dict[str, Any]) -> list[str]:
    tags, _ = nested_string_list(disk_spec, "tags")
    return tags


def collect_disks(nodes: Iterable[dict[str, Any]], filters: Filters) -> list[Disk]:
    disks: list[Disk] = []

    for node in nodes:
        node_name = get_name(node)
        if filters.node and node_name != filters.node:
            continue

        disk_specs, found = nested_map(node, "spec", "disks")
        if not found or not disk_specs:
            logger.debug("node %s has no disk spec, skipping", node_name)
            continue

        disk_statuses, found = nested_map(node, "status", "diskStatus")
        if not found or not disk_statuses:
            logger.debug("node %s has no disk status, skipping", node_name)
            continue

        for disk_name, disk_spec in disk_specs.items():
            if filters.disk and disk_name != filters.disk:
                continue
            if not isinstance(disk_spec, dict):
                continue

            tags = _disk_tags(disk_spec)
            if filters.disk_tag and filters.disk_tag not in tags:
                continue

            status = disk_statuses.get(disk_name)
            if not isinstance(status, dict):
                logger.debug("disk %s/%s has no status record", node_name, disk_name)
                continue

            maximum = ByteSize(nested_float(status, "storageMaximum")[0])
            available = ByteSize(nested_float(status, "storageAvailable")[0])

            disks.append(
                Disk(
                    node_name=node_name,
                    disk_name=disk_name,
                    path=nested_string(disk_spec, "path")[0],
                    tags=tags,
                    disk_type=nested_string(disk_spec, "diskType")[0],
                    storage_maximum=maximum,
                    storage_reserved=ByteSize(
                        nested_float(status, "storageReserved")[0]
                    ),
                    storage_scheduled=ByteSize(
                        nested_float(status, "storageScheduled")[0]
                    ),
                    storage_available=available,
                    percent_used=percent_used(maximum, available),
                )
            )

    return disks


# ----------------------------
# Volumes
# ----------------------------


def parse_volume(volume: dict[str, Any]) -> Volume:
    state, _ = nested_string(volume, "status", "state")
    robustness, _ = nested_string(volume, "status", "robustness")

    conditions = parse_conditions(nested_get(volume, "status", "conditions")[0])
    scheduled = True
    message = ""
    for c in conditions:
        if c.type == "Scheduled" and c.status == "False":
            scheduled = False
            message = c.message

    replicas, _ = nested_map(volume, "status", "replicas")
    active, inferred = active_replica_count(state, robustness, replicas)

    return Volume(
        name=get_name(volume),
        size=ByteSize(nested_float(volume, "spec", "size")[0]),
        actual_size=ByteSize(nested_float(volume, "status", "actualSize")[0]),
        state=state,
        robustness=robustness,
        node=nested_string(volume, "status", "currentNodeID")[0],
        replica_count=len(replicas),
        active_replicas=active,
        active_replicas_inferred=inferred,
        desired_replicas=nested_int(volume, "spec", "numberOfReplicas")[0],
        scheduled=scheduled,
        message=message,
        disk_selector=nested_string_list(volume, "spec", "diskSelector")[0],
        node_selector=nested_string_list(volume, "spec", "nodeSelector")[0],
        conditions=conditions,
    )


def collect_volumes(
    volumes: Iterable[dict[str, Any]], filters: Filters
) -> list[Volume]:
    collected = []
    for volume in volumes:
        if not isinstance(volume, dict) or not get_name(volume):
            logger.debug("skipping volume document without a name")
            continue
        if not volume_passes(volume, filters):
            continue
        collected.append(parse_volume(volume))
    return collected


# ----------------------------
# Replicas
# ----------------------------


def parse_replica(replica: dict[str, Any]) -> Replica:
    state, _ = nested_string(replica, "status", "state")
    failed_at, _ = nested_string(replica, "status", "failedAt")
    healthy = state.lower() not in REPLICA_ERROR_STATES and not failed_at

    return Replica(
        name=get_name(replica),
        volume_name=nested_string(replica, "spec", "volumeName")[0],
        instance_id=nested_string(replica, "status", "instanceID")[0],
        node_id=nested_string(replica, "spec", "nodeID")[0],
        disk_id=nested_string(replica, "spec", "diskID")[0],
        disk_path=nested_string(replica, "spec", "diskPath")[0],
        data_path=nested_string(
            replica, "status", "currentReplicaAddressMap", "dataPath"
        )[0],
        state=state,
        failed_at=failed_at,
        size=ByteSize(nested_float(replica, "spec", "size")[0]),
        mode=nested_string(replica, "spec", "mode")[0],
        healthy=healthy,
    )


def collect_replicas(
    replicas: Iterable[dict[str, Any]],
    volume_tag_index: set[str] | None,
    filters: Filters,
) -> dict[str, list[Replica]]:
    """
    Group replicas under their owning volume.

    volume_tag_index is the result of volumes_using_tag() for filters.disk_tag;
    it is ignored when no tag filter is set.
    """
    grouped: dict[str, list[Replica]] = {}

    for replica in replicas:
        if not isinstance(replica, dict):
            continue
        volume_name, _ = nested_string(replica, "spec", "volumeName")

        if filters.volume and volume_name != filters.volume:
            continue
        if filters.disk_tag and volume_name not in (volume_tag_index or set()):
            continue

        grouped.setdefault(volume_name, []).append(parse_replica(replica))

    return grouped


# ----------------------------
# Presentation ordering
# ----------------------------


def sort_disks(disks: list[Disk]) -> list[Disk]:
    return sorted(disks, key=lambda d: (d.node_name, d.disk_name))


def sort_volumes(volumes: list[Volume]) -> list[Volume]:
    return sorted(volumes, key=lambda v: v.name)


def sort_replicas(grouped: dict[str, list[Replica]]) -> dict[str, list[Replica]]:
    return {
        name: sorted(grouped[name], key=lambda r: (r.node_id, r.name))
        for name in sorted(grouped)
    }
