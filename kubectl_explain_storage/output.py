import json
from dataclasses import dataclass
from typing import Any

import yaml

from kubectl_explain_storage.capacity import usage_level
from kubectl_explain_storage.report import StorageReport, report_to_dict

DISK_HEADERS = [
    "NODE",
    "DISK",
    "TAGS",
    "TYPE",
    "TOTAL",
    "AVAILABLE",
    "SCHEDULED",
    "USED%",
    "PATH",
]
VOLUME_HEADERS = [
    "VOLUME",
    "SIZE",
    "STATE",
    "ROBUSTNESS",
    "NODE",
    "REPLICAS",
    "DISK SELECTOR",
    "SAFE TO DELETE",
]
REPLICA_HEADERS = [
    "VOLUME",
    "REPLICA",
    "NODE",
    "DISK",
    "STATE",
    "MODE",
    "HEALTHY",
    "SIZE",
]
RELATIONSHIP_HEADERS = [
    "LONGHORN VOLUME",
    "PV NAME",
    "PVC NAME",
    "PVC NAMESPACE",
    "STORAGE CLASS",
    "SIZE",
    "STATUS",
    "CONSUMER PODS",
]
ISSUE_HEADERS = [
    "VOLUME",
    "STATE",
    "ROBUSTNESS",
    "REPLICAS",
    "ISSUE",
    "POSSIBLE SOLUTION",
]
TAG_HEADERS = ["VOLUME", "DISK SELECTOR", "STATE", "ROBUSTNESS", "REPLICAS", "SIZE"]


@dataclass
class OutputConfig:
    """
    Presentation settings, passed explicitly to the renderer.
    """

    fmt: str = "text"
    show_replicas: bool = True
    show_relationships: bool = True


# ----------------------------
# Output formatting
# ----------------------------


def _table(headers: list[str], rows: list[list[Any]], empty: str) -> list[str]:
    if not rows:
        return [empty]
    cells = [[str(c) for c in row] for row in rows]
    widths = [
        max(len(headers[i]), *(len(row[i]) for row in cells))
        for i in range(len(headers))
    ]

    def line(values: list[str]) -> str:
        return "   ".join(v.ljust(w) for v, w in zip(values, widths)).rstrip()

    return [line(headers), line(["─" * w for w in widths])] + [
        line(row) for row in cells
    ]


def _section(title: str, description: str) -> list[str]:
    return ["", f"▌ {title}", description, "─" * 50]


def _or_none(values: list[str]) -> str:
    return ",".join(values) if values else "none"


def render_text(report: StorageReport, config: OutputConfig) -> str:
    lines: list[str] = []

    if report.errors:
        lines.append("Collection errors:")
        for collection, reason in sorted(report.errors.items()):
            lines.append(f"  - {collection}: {reason}")

    # ---- Disks ----
    if "disks" not in report.skipped:
        lines += _section(
            "DISK INFORMATION", "Storage capacity and utilization of Longhorn disks"
        )
        lines += _table(
            DISK_HEADERS,
            [
                [
                    d.node_name,
                    d.disk_name,
                    _or_none(d.tags),
                    d.disk_type,
                    d.storage_maximum,
                    d.storage_available,
                    d.storage_scheduled,
                    f"{d.percent_used:.1f}% ({usage_level(d.percent_used)})",
                    d.path,
                ]
                for d in report.disks
            ],
            "No disks found",
        )

    # ---- Volumes ----
    if "volumes" not in report.skipped:
        lines += _section("VOLUME INFORMATION", "Longhorn volumes and their status")
        lines += _table(
            VOLUME_HEADERS,
            [
                [
                    v.name,
                    v.size,
                    v.state,
                    v.robustness,
                    v.node or "-",
                    v.replica_status + ("*" if v.active_replicas_inferred else ""),
                    _or_none(v.disk_selector),
                    f"Yes - {v.delete_reason}" if v.safe_to_delete else "No",
                ]
                for v in report.volumes
            ],
            "No volumes found",
        )
        if any(v.active_replicas_inferred for v in report.volumes):
            lines.append("* active replica inferred from attached+healthy state")

    # ---- Replicas ----
    if config.show_replicas and "replicas" not in report.skipped:
        lines += _section(
            "REPLICA INFORMATION", "Volume replicas and their placement"
        )
        lines += _table(
            REPLICA_HEADERS,
            [
                [
                    r.volume_name,
                    r.name,
                    r.node_id,
                    r.disk_id,
                    r.state,
                    r.mode,
                    "Yes" if r.healthy else "No",
                    r.size,
                ]
                for replicas in report.replicas.values()
                for r in replicas
            ],
            "No replicas found",
        )

    # ---- Relationships ----
    if config.show_relationships and "relationships" not in report.skipped:
        lines += _section(
            "KUBERNETES RESOURCE RELATIONSHIPS",
            "Mapping between Longhorn volumes, PVs, PVCs, and Pods",
        )
        rows = []
        for volume_id in sorted(report.relationships):
            pv = report.relationships[volume_id]
            pods = ", ".join(f"{p.name} ({p.status})" for p in pv.consumer_pods)
            rows.append(
                [
                    volume_id,
                    pv.name,
                    pv.pvc_name or "none",
                    pv.pvc_namespace or "none",
                    pv.storage_class,
                    pv.size,
                    pv.status,
                    pods or "none",
                ]
            )
        lines += _table(
            RELATIONSHIP_HEADERS,
            rows,
            "No Kubernetes resources found using Longhorn volumes",
        )

    # ---- Safe to delete ----
    if report.deletion_candidates:
        lines += _section(
            "VOLUMES SAFE TO DELETE", "These volumes can be safely deleted"
        )
        for c in report.deletion_candidates:
            lines.append(f"  {c.volume} - {c.status}: {c.reason}")
        lines.append("")
        lines.append("You can delete them with the following commands:")
        for c in report.deletion_candidates:
            lines.append(f"  {c.command}")

    # ---- Issues ----
    if "disks" not in report.skipped:
        lines += _section(
            "DISKS WITH ISSUES", "Problems detected with Longhorn disks"
        )
        lines += _table(
            ["NODE", "DISK", "ISSUE"],
            [[i.node_name, i.disk_name, i.issue] for i in report.disk_issues],
            "No disk issues found",
        )

    if "volumes" not in report.skipped:
        lines += _section("VOLUMES WITH ISSUES", "Detailed diagnosis and solutions")
        lines += _table(
            ISSUE_HEADERS,
            [
                [
                    f.volume,
                    f.state,
                    f.robustness,
                    f.replica_status,
                    f.issue,
                    f.remediation,
                ]
                for f in report.findings
            ],
            "No volume issues found",
        )

        lines += _section(
            "VOLUMES BY DISK TAG", "Volumes grouped by the disk tags they use"
        )
        lines += _table(
            TAG_HEADERS,
            [
                [
                    v.name,
                    ",".join(v.disk_selector),
                    v.state,
                    v.robustness,
                    v.replica_status,
                    v.size,
                ]
                for v in report.tagged_volumes
            ],
            "No volumes using disk tags found",
        )

    return "\n".join(lines).lstrip("\n")


def output_result(report: StorageReport, config: OutputConfig | None = None) -> None:
    """
    Print a storage report.
    - text: one table per section, skipped sections are omitted
    - json / yaml: the full report, including the relation graph
    """
    config = config or OutputConfig()

    if config.fmt == "json":
        print(json.dumps(report_to_dict(report), indent=2))
        return

    if config.fmt == "yaml":
        print(yaml.safe_dump(report_to_dict(report), sort_keys=False))
        return

    print(render_text(report, config))
