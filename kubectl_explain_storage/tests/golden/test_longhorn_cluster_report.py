import json
import os

import pytest

from kubectl_explain_storage.context import build_snapshot
from kubectl_explain_storage.engine import get_default_rules
from kubectl_explain_storage.report import build_report

BASE_DIR = os.path.dirname(__file__)
FIXTURE_DIR = os.path.join(BASE_DIR, "longhorn_cluster")


def load_json(name: str):
    with open(os.path.join(FIXTURE_DIR, name)) as f:
        return json.load(f)


def snapshot_args(**overrides):
    fields = {
        "snapshot": FIXTURE_DIR,
        "nodes": None,
        "volumes": None,
        "replicas": None,
        "pvs": None,
        "pods": None,
    }
    fields.update(overrides)
    return type("Args", (), fields)()


@pytest.fixture
def report():
    snapshot = build_snapshot(snapshot_args())
    return build_report(snapshot, rules=get_default_rules())


@pytest.fixture
def expected():
    return load_json("expected.json")


def test_snapshot_directory_loads_every_collection():
    snapshot = build_snapshot(snapshot_args())

    assert snapshot.errors == {}
    assert len(snapshot.nodes) == 2
    assert len(snapshot.volumes) == 6
    assert len(snapshot.replicas) == 3
    assert len(snapshot.pvs) == 5
    assert len(snapshot.pods) == 5


def test_disk_capacity_golden(report, expected):
    got = [
        {"node": d.node_name, "disk": d.disk_name, "tags": d.tags} for d in report.disks
    ]
    want = [
        {k: v for k, v in d.items() if k != "percent_used"} for d in expected["disks"]
    ]
    assert got == want

    for disk, want_disk in zip(report.disks, expected["disks"]):
        assert disk.percent_used == pytest.approx(want_disk["percent_used"])


def test_disk_issues_golden(report, expected):
    got = [
        {"node": i.node_name, "disk": i.disk_name, "issue": i.issue}
        for i in report.disk_issues
    ]
    assert got == expected["disk_issues"]


def test_volume_table_golden(report, expected):
    got = [
        {
            "name": v.name,
            "replica_status": v.replica_status,
            "inferred": v.active_replicas_inferred,
            "safe_to_delete": v.safe_to_delete,
        }
        for v in report.volumes
    ]
    assert got == expected["volumes"]


def test_findings_golden(report, expected):
    got = [
        {
            "volume": f.volume,
            "rule": f.rule,
            "issue": f.issue,
            "remediation": f.remediation,
        }
        for f in report.findings
    ]
    assert got == expected["findings"]

    # Informational conditions never surface as findings
    assert not any("restore" in f.issue.lower() for f in report.findings)


def test_disk_tag_finding_carries_evidence(report):
    finding = next(f for f in report.findings if f.volume == "pvc-big")

    assert finding.evidence["required_tags"] == ["nvme"]
    assert finding.evidence["available_disks"] == 0
    assert finding.evidence["required_bytes"] == 53687091200.0


def test_deletion_candidates_golden(report, expected):
    got = [
        {
            "volume": c.volume,
            "status": c.status,
            "reason": c.reason,
            "command": c.command,
        }
        for c in report.deletion_candidates
    ]
    assert got == expected["deletion_candidates"]


def test_tagged_volumes_and_replicas_golden(report, expected):
    assert [v.name for v in report.tagged_volumes] == expected["tagged_volumes"]

    got = {
        volume: [
            {"name": r.name, "node": r.node_id, "healthy": r.healthy}
            for r in replicas
        ]
        for volume, replicas in report.replicas.items()
    }
    assert got == expected["replicas"]
    assert list(report.replicas) == sorted(expected["replicas"])


def test_relationship_graph_golden(report, expected):
    assert report.relations == expected["relations"]

    # Non-Longhorn PVs never enter the relationship map
    assert "share" not in report.relationships
    assert all(pv.name != "pv-nfs" for pv in report.relationships.values())


def test_consumer_pods_are_namespace_scoped(report):
    app = report.relationships["pvc-app"]

    assert [(p.namespace, p.name) for p in app.consumer_pods] == [
        ("apps", "app-0"),
        ("apps", "app-1"),
    ]
    assert app.consumer_pods[0].status == "Running"
    assert app.consumer_pods[0].node_name == "node-1"
