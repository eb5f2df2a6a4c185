import logging
import os
from collections.abc import Iterable
from typing import Any

from kubectl_explain_storage.collector import parse_conditions
from kubectl_explain_storage.errors import RuleContractError
from kubectl_explain_storage.fields import get_name, nested_get, nested_map
from kubectl_explain_storage.loader import load_rules
from kubectl_explain_storage.records import (
    Condition,
    DeletionCandidate,
    DiagnosticFinding,
    Disk,
    DiskIssue,
    Filters,
    PersistentVolumeRecord,
    Volume,
)
from kubectl_explain_storage.rules.base_rule import VolumeIssueRule

logger = logging.getLogger(__name__)

UNHEALTHY_ROBUSTNESS = {"degraded", "faulted", "unknown"}
PROBLEM_STATES = {"detached", "error"}

# Transient or expected conditions that never indicate a problem
INFORMATIONAL_CONDITIONS = {"Restore", "WaitForBackingImage"}

UNCLASSIFIED_REMEDIATION = "Unknown issue, check Longhorn logs for more details"
NO_CONDITION_ISSUE = "Volume has issues but no specific condition found"

DELETE_COMMAND = "kubectl -n {namespace} delete volumes.longhorn.io {volume}"

_DEFAULT_RULES = None


def get_default_rules() -> list[VolumeIssueRule]:
    global _DEFAULT_RULES
    if _DEFAULT_RULES is None:
        rules_path = os.path.join(os.path.dirname(__file__), "rules")
        _DEFAULT_RULES = sorted(
            load_rules(rules_path),
            key=lambda r: getattr(r, "priority", 100),
        )
    return _DEFAULT_RULES


# ----------------------------
# Volume classification
# ----------------------------


def failed_conditions(volume: Volume) -> list[Condition]:
    return [
        c
        for c in volume.conditions
        if c.type not in INFORMATIONAL_CONDITIONS
        and c.status == "False"
        and c.message
    ]


def volume_has_issue(volume: Volume) -> bool:
    if volume.state == "attached" and volume.robustness in UNHEALTHY_ROBUSTNESS:
        return True
    if volume.state in PROBLEM_STATES:
        return True
    return bool(failed_conditions(volume))


def state_remediation(volume: Volume) -> str:
    """
    Generic advice for a volume with an issue but no failed condition.
    """
    if volume.state == "detached":
        return (
            "Volume is detached. Attach the volume to a workload "
            "or delete it if no longer needed."
        )
    if volume.robustness == "unknown":
        return (
            "Volume robustness is unknown. This may be a transient state. "
            "If it persists, try restarting the Longhorn manager."
        )
    if volume.state == "error":
        return "Volume is in error state. Check Longhorn manager logs for details."
    return UNCLASSIFIED_REMEDIATION


def _apply_rules(
    condition: Condition,
    volume: Volume,
    context: dict[str, Any],
    rules: list[VolumeIssueRule],
) -> tuple[str, str, dict[str, Any]]:
    for rule in rules:
        if not rule.matches(condition, volume, context):
            continue

        exp = rule.explain(condition, volume, context)

        # ---- Explain() contract enforcement ----
        if not isinstance(exp, dict):
            raise RuleContractError(f"{rule.name}.explain() must return a dict")
        remediation = exp.get("remediation")
        if not isinstance(remediation, str) or not remediation:
            raise RuleContractError(
                f"{rule.name}.explain() must include 'remediation' (str)"
            )
        evidence = exp.get("evidence", {})
        if not isinstance(evidence, dict):
            raise RuleContractError(f"{rule.name}.evidence must be a dict")

        logger.debug("rule %s matched volume %s", rule.name, volume.name)
        return rule.name, remediation, evidence

    return "Unclassified", UNCLASSIFIED_REMEDIATION, {}


def diagnose_volume(
    volume: Volume,
    disks: list[Disk],
    rules: list[VolumeIssueRule] | None = None,
) -> list[DiagnosticFinding]:
    """
    Explain what is wrong with one volume.

    - One finding per failed condition, classified by the rule table
    - A single state-derived finding when the volume has an issue but
      no failed condition
    - No findings for a healthy volume
    """
    if not volume_has_issue(volume):
        return []

    rules = sorted(
        rules if rules is not None else get_default_rules(),
        key=lambda r: getattr(r, "priority", 100),
    )
    context = {"disks": disks}

    conditions = failed_conditions(volume)
    if not conditions:
        return [
            DiagnosticFinding(
                volume=volume.name,
                state=volume.state,
                robustness=volume.robustness,
                replica_status=volume.replica_status,
                issue=NO_CONDITION_ISSUE,
                remediation=state_remediation(volume),
                rule="VolumeState",
            )
        ]

    findings = []
    for condition in conditions:
        rule_name, remediation, evidence = _apply_rules(
            condition, volume, context, rules
        )
        findings.append(
            DiagnosticFinding(
                volume=volume.name,
                state=volume.state,
                robustness=volume.robustness,
                replica_status=volume.replica_status,
                issue=f"{condition.type}: {condition.message}",
                remediation=remediation,
                rule=rule_name,
                evidence=evidence,
            )
        )
    return findings


def diagnose_volumes(
    volumes: Iterable[Volume],
    disks: list[Disk],
    rules: list[VolumeIssueRule] | None = None,
) -> list[DiagnosticFinding]:
    findings = []
    for volume in volumes:
        findings.extend(diagnose_volume(volume, disks, rules))
    return findings


# ----------------------------
# Disk classification
# ----------------------------


def diagnose_disks(
    nodes: Iterable[dict[str, Any]], filters: Filters | None = None
) -> list[DiskIssue]:
    """
    Flag disks without tags, without a status record, or with a False
    condition. Healthy disks are not reported.
    """
    filters = filters or Filters()
    issues: list[DiskIssue] = []

    for node in nodes:
        node_name = get_name(node)
        if filters.node and node_name != filters.node:
            continue

        disk_specs, found = nested_map(node, "spec", "disks")
        if not found:
            continue
        disk_statuses, found = nested_map(node, "status", "diskStatus")
        if not found:
            continue

        for disk_name, disk_spec in disk_specs.items():
            if filters.disk and disk_name != filters.disk:
                continue
            if not isinstance(disk_spec, dict):
                continue

            if disk_spec.get("tags") is None:
                issues.append(DiskIssue(node_name, disk_name, "No tags defined"))
                continue

            if disk_name not in disk_statuses:
                issues.append(
                    DiskIssue(node_name, disk_name, "No disk status available")
                )
                continue

            raw_conditions, _ = nested_get(disk_statuses, disk_name, "conditions")
            for c in parse_conditions(raw_conditions):
                if c.status == "False" and c.type:
                    issues.append(
                        DiskIssue(node_name, disk_name, f"{c.type}: {c.reason}")
                    )

    return issues


# ----------------------------
# Deletion safety
# ----------------------------


def safe_to_delete(
    volume: Volume, pv_map: dict[str, PersistentVolumeRecord]
) -> tuple[bool, str]:
    """
    A volume is safe to delete when its PV was Released or Failed, or when
    no PV is bound and the volume is detached.
    """
    record = pv_map.get(volume.name)
    if record is not None:
        if record.status == "Released":
            return True, "PV is in Released state and no longer used by any pod"
        if record.status == "Failed":
            return True, "PV is in Failed state"
        return False, ""
    if volume.state == "detached":
        return True, "Volume is detached and not bound to any PV"
    return False, ""


def mark_safe_to_delete(
    volumes: Iterable[Volume], pv_map: dict[str, PersistentVolumeRecord]
) -> None:
    for volume in volumes:
        volume.safe_to_delete, volume.delete_reason = safe_to_delete(volume, pv_map)


def deletion_candidates(
    volumes: Iterable[Volume],
    pv_map: dict[str, PersistentVolumeRecord],
    namespace: str,
) -> list[DeletionCandidate]:
    """
    Volumes safe to delete, each with a ready-to-copy delete command.
    """
    candidates = []
    for volume in sorted(volumes, key=lambda v: v.name):
        safe, reason = safe_to_delete(volume, pv_map)
        if not safe:
            continue
        record = pv_map.get(volume.name)
        candidates.append(
            DeletionCandidate(
                volume=volume.name,
                reason=reason,
                status=record.status if record is not None else volume.state,
                command=DELETE_COMMAND.format(namespace=namespace, volume=volume.name),
            )
        )
    return candidates
