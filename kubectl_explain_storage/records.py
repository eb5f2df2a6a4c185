from dataclasses import dataclass, field
from typing import Any

from kubectl_explain_storage.units import ByteSize


@dataclass
class Filters:
    """
    Exact-match include filters. An empty value means no constraint.
    """

    node: str = ""
    disk: str = ""
    volume: str = ""
    disk_tag: str = ""


@dataclass
class Condition:
    type: str
    status: str
    reason: str = ""
    message: str = ""
    timestamp: str = ""


@dataclass
class Disk:
    node_name: str
    disk_name: str
    path: str = ""
    tags: list[str] = field(default_factory=list)
    disk_type: str = ""
    storage_maximum: ByteSize = ByteSize(0)
    storage_reserved: ByteSize = ByteSize(0)
    storage_scheduled: ByteSize = ByteSize(0)
    storage_available: ByteSize = ByteSize(0)
    percent_used: float = 0.0


@dataclass
class Volume:
    """
    A Longhorn volume as seen in one collection pass.

    active_replicas counts RW-mode replicas. When none are observed but the
    volume is attached and healthy, it is reported as 1 and
    active_replicas_inferred is set: an approximation, not an observation.
    """

    name: str
    size: ByteSize = ByteSize(0)
    actual_size: ByteSize = ByteSize(0)
    state: str = ""
    robustness: str = ""
    node: str = ""
    replica_count: int = 0
    active_replicas: int = 0
    active_replicas_inferred: bool = False
    desired_replicas: int = 0
    scheduled: bool = True
    message: str = ""
    disk_selector: list[str] = field(default_factory=list)
    node_selector: list[str] = field(default_factory=list)
    conditions: list[Condition] = field(default_factory=list)
    safe_to_delete: bool = False
    delete_reason: str = ""

    @property
    def replica_status(self) -> str:
        return f"{self.active_replicas}/{self.desired_replicas}"


@dataclass
class Replica:
    name: str
    volume_name: str
    instance_id: str = ""
    node_id: str = ""
    disk_id: str = ""
    disk_path: str = ""
    data_path: str = ""
    state: str = ""
    failed_at: str = ""
    size: ByteSize = ByteSize(0)
    mode: str = ""
    healthy: bool = True


@dataclass
class PodRecord:
    name: str
    namespace: str
    status: str = ""
    node_name: str = ""


@dataclass
class PersistentVolumeRecord:
    """
    A native PersistentVolume backed by the Longhorn CSI driver,
    keyed by its volume handle (the Longhorn volume name).
    """

    name: str
    volume_handle: str
    storage_class: str = ""
    size: str = ""
    status: str = ""
    pvc_name: str = ""
    pvc_namespace: str = ""
    consumer_pods: list[PodRecord] = field(default_factory=list)


@dataclass
class DiagnosticFinding:
    volume: str
    state: str
    robustness: str
    replica_status: str
    issue: str
    remediation: str
    rule: str = "Unclassified"
    evidence: dict[str, Any] = field(default_factory=dict)


@dataclass
class DiskIssue:
    node_name: str
    disk_name: str
    issue: str


@dataclass
class DeletionCandidate:
    volume: str
    reason: str
    status: str
    command: str
