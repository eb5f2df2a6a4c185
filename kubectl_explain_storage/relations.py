import logging
from collections.abc import Callable, Iterable
from typing import Any

from kubectl_explain_storage.collector import volume_passes
from kubectl_explain_storage.fields import (
    get_name,
    get_namespace,
    nested_list,
    nested_string,
)
from kubectl_explain_storage.records import Filters, PersistentVolumeRecord, PodRecord

logger = logging.getLogger(__name__)

LONGHORN_CSI_DRIVER = "driver.longhorn.io"

PodSource = Iterable[dict[str, Any]] | Callable[[str], Iterable[dict[str, Any]]]

ClaimIndex = dict[str, list[PodRecord]]


def _pod_record(pod: dict[str, Any]) -> PodRecord:
    return PodRecord(
        name=get_name(pod),
        namespace=get_namespace(pod),
        status=nested_string(pod, "status", "phase")[0],
        node_name=nested_string(pod, "spec", "nodeName")[0],
    )


def _claims_mounted(pod: dict[str, Any]) -> set[str]:
    claims = set()
    volumes, _ = nested_list(pod, "spec", "volumes")
    for volume in volumes:
        claim, found = nested_string(volume, "persistentVolumeClaim", "claimName")
        if found and claim:
            claims.add(claim)
    return claims


def build_claim_index(pods: Iterable[dict[str, Any]]) -> ClaimIndex:
    """
    Map claim name -> consumer pods for one namespace's pod listing.
    A pod appears once per claim however many volume entries reference it.
    """
    index: ClaimIndex = {}
    for pod in pods:
        if not isinstance(pod, dict):
            continue
        record = None
        for claim in sorted(_claims_mounted(pod)):
            record = record or _pod_record(pod)
            index.setdefault(claim, []).append(record)
    return index


class _ClaimIndexes:
    """
    Lazily builds one claim index per namespace.
    """

    def __init__(self, pods: PodSource):
        self._indexes: dict[str, ClaimIndex] = {}
        self._list_pods: Callable[[str], Iterable[dict[str, Any]]] | None = None

        if callable(pods):
            self._list_pods = pods
            return

        by_namespace: dict[str, list[dict[str, Any]]] = {}
        for pod in pods:
            if isinstance(pod, dict):
                by_namespace.setdefault(get_namespace(pod), []).append(pod)
        for namespace, items in by_namespace.items():
            self._indexes[namespace] = build_claim_index(items)

    def consumers(self, namespace: str, claim: str) -> list[PodRecord]:
        if namespace not in self._indexes:
            self._indexes[namespace] = self._load(namespace)
        return list(self._indexes[namespace].get(claim, []))

    def _load(self, namespace: str) -> ClaimIndex:
        if self._list_pods is None:
            return {}
        try:
            return build_claim_index(self._list_pods(namespace))
        except Exception as exc:
            logger.warning("listing pods in namespace %s failed: %s", namespace, exc)
            return {}


# ----------------------------
# Volume -> PV -> PVC -> Pod
# ----------------------------


def resolve(
    volumes: Iterable[dict[str, Any]],
    pvs: Iterable[dict[str, Any]],
    pods: PodSource,
    filters: Filters,
) -> dict[str, PersistentVolumeRecord]:
    """
    Join Longhorn volumes to the PersistentVolumes that use them, their
    claims and the pods mounting those claims.

    Returns a mapping keyed by Longhorn volume name. PVs of other drivers,
    PVs outside the active filters and unreadable pod listings are left out
    without failing the whole resolution.
    """
    selected = {get_name(v) for v in volumes if volume_passes(v, filters)}

    pv_map: dict[str, PersistentVolumeRecord] = {}
    for pv in pvs:
        driver, _ = nested_string(pv, "spec", "csi", "driver")
        if driver != LONGHORN_CSI_DRIVER:
            logger.debug("PV %s does not use %s", get_name(pv), LONGHORN_CSI_DRIVER)
            continue

        volume_id, found = nested_string(pv, "spec", "csi", "volumeHandle")
        if not found or not volume_id:
            continue
        if filters.volume and volume_id != filters.volume:
            continue
        if filters.disk_tag and volume_id not in selected:
            continue

        pv_map[volume_id] = PersistentVolumeRecord(
            name=get_name(pv),
            volume_handle=volume_id,
            storage_class=nested_string(pv, "spec", "storageClassName")[0],
            size=nested_string(pv, "spec", "capacity", "storage")[0],
            status=nested_string(pv, "status", "phase")[0],
            pvc_name=nested_string(pv, "spec", "claimRef", "name")[0],
            pvc_namespace=nested_string(pv, "spec", "claimRef", "namespace")[0],
        )

    indexes = _ClaimIndexes(pods)
    for record in pv_map.values():
        if not record.pvc_name or not record.pvc_namespace:
            continue
        record.consumer_pods = indexes.consumers(record.pvc_namespace, record.pvc_name)

    return pv_map


def build_relations(
    pv_map: dict[str, PersistentVolumeRecord],
) -> dict[str, list[str]]:
    """
    Build a directed relationship graph between resolved objects.
    """
    relations: dict[str, list[str]] = {}

    for volume_id in sorted(pv_map):
        record = pv_map[volume_id]
        volume_key = f"volume:{volume_id}"
        pv_key = f"pv:{record.name}"
        relations.setdefault(volume_key, []).append(pv_key)
        relations.setdefault(pv_key, [])

        if not record.pvc_name:
            continue
        pvc_key = f"pvc:{record.pvc_namespace}/{record.pvc_name}"
        relations[pv_key].append(pvc_key)
        relations.setdefault(pvc_key, [])

        for pod in record.consumer_pods:
            pod_key = f"pod:{pod.namespace}/{pod.name}"
            if pod_key not in relations[pvc_key]:
                relations[pvc_key].append(pod_key)

    return relations
