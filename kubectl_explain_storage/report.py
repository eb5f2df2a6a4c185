import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from kubectl_explain_storage.capacity import volumes_by_disk_tag
from kubectl_explain_storage.collector import (
    collect_disks,
    collect_replicas,
    collect_volumes,
    sort_disks,
    sort_replicas,
    sort_volumes,
    volumes_using_tag,
)
from kubectl_explain_storage.engine import (
    deletion_candidates,
    diagnose_disks,
    diagnose_volumes,
    mark_safe_to_delete,
)
from kubectl_explain_storage.records import (
    DeletionCandidate,
    DiagnosticFinding,
    Disk,
    DiskIssue,
    Filters,
    PersistentVolumeRecord,
    Replica,
    Volume,
)
from kubectl_explain_storage.relations import build_relations, resolve
from kubectl_explain_storage.rules.base_rule import VolumeIssueRule
from kubectl_explain_storage.snapshot import ClusterSnapshot
from kubectl_explain_storage.units import ByteSize

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "longhorn-system"


@dataclass
class StorageReport:
    namespace: str
    filters: Filters
    disks: list[Disk] = field(default_factory=list)
    volumes: list[Volume] = field(default_factory=list)
    replicas: dict[str, list[Replica]] = field(default_factory=dict)
    relationships: dict[str, PersistentVolumeRecord] = field(default_factory=dict)
    relations: dict[str, list[str]] = field(default_factory=dict)
    deletion_candidates: list[DeletionCandidate] = field(default_factory=list)
    disk_issues: list[DiskIssue] = field(default_factory=list)
    findings: list[DiagnosticFinding] = field(default_factory=list)
    tagged_volumes: list[Volume] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    # Sections that could not be computed because an input collection failed
    skipped: list[str] = field(default_factory=list)


def _plain(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    return {k: float(v) if isinstance(v, ByteSize) else v for k, v in pairs}


def report_to_dict(report: StorageReport) -> dict[str, Any]:
    """
    JSON/YAML-safe view of a report. ByteSize values become plain floats.
    """
    data = asdict(report, dict_factory=_plain)
    for volume in data["volumes"] + data["tagged_volumes"]:
        volume["replica_status"] = (
            f"{volume['active_replicas']}/{volume['desired_replicas']}"
        )
    return data


def build_report(
    snapshot: ClusterSnapshot,
    filters: Filters | None = None,
    namespace: str = DEFAULT_NAMESPACE,
    rules: list[VolumeIssueRule] | None = None,
) -> StorageReport:
    """
    Run one inspection pass over a snapshot.

    Each section only depends on the collections it reads; when one of them
    failed the section is skipped and the rest of the report is still built.
    """
    filters = filters or Filters()
    report = StorageReport(
        namespace=namespace, filters=filters, errors=dict(snapshot.errors)
    )

    def skip(section: str, *collections: str) -> bool:
        if snapshot.available(*collections):
            return False
        logger.warning("skipping %s: %s unavailable", section, ", ".join(collections))
        report.skipped.append(section)
        return True

    # ----------------------------
    # Relationships first: deletion safety depends on them
    # ----------------------------
    relation_inputs = ("pvs", "volumes") if filters.disk_tag else ("pvs",)
    if not skip("relationships", *relation_inputs):
        report.relationships = resolve(
            snapshot.volumes, snapshot.pvs, snapshot.pods, filters
        )
        report.relations = build_relations(report.relationships)

    # ----------------------------
    # Capacity
    # ----------------------------
    all_disks: list[Disk] = []
    if not skip("disks", "nodes"):
        report.disks = sort_disks(collect_disks(snapshot.nodes, filters))
        all_disks = collect_disks(snapshot.nodes, Filters())
        report.disk_issues = diagnose_disks(
            snapshot.nodes, Filters(node=filters.node, disk=filters.disk)
        )

    # ----------------------------
    # Volumes, deletion safety and diagnosis
    # ----------------------------
    if not skip("volumes", "volumes"):
        report.volumes = sort_volumes(collect_volumes(snapshot.volumes, filters))
        report.tagged_volumes = volumes_by_disk_tag(report.volumes)
        report.findings = diagnose_volumes(report.volumes, all_disks, rules)

        if "relationships" in report.skipped:
            # Without the PV view an unbound volume cannot be told apart
            # from a volume whose PV simply was not read.
            report.skipped.append("deletion_candidates")
        else:
            mark_safe_to_delete(report.volumes, report.relationships)
            report.deletion_candidates = deletion_candidates(
                report.volumes, report.relationships, namespace
            )

    # ----------------------------
    # Replicas
    # ----------------------------
    replica_inputs = ("replicas", "volumes") if filters.disk_tag else ("replicas",)
    if not skip("replicas", *replica_inputs):
        tag_index = (
            volumes_using_tag(snapshot.volumes, filters.disk_tag)
            if filters.disk_tag
            else None
        )
        report.replicas = sort_replicas(
            collect_replicas(snapshot.replicas, tag_index, filters)
        )

    return report
