import glob
import importlib.util
import logging
import os
import string
from typing import Any

import yaml

from kubectl_explain_storage.errors import RuleContractError
from kubectl_explain_storage.rules.base_rule import VolumeIssueRule

logger = logging.getLogger(__name__)

# Fields a YAML remediation template may reference
TEMPLATE_FIELDS = {
    "volume",
    "size",
    "disk_selector",
    "node_selector",
    "condition_type",
    "message",
}

# ----------------------------
# Dynamic Rule Loader
# ----------------------------


class YamlVolumeIssueRule(VolumeIssueRule):
    """
    Remediation rule declared in YAML:

        - name: ReplicaRebuildLimit
          category: Scheduling
          priority: 60
          patterns: ["replica rebuild limit"]
          remediation: "Volume {volume} waits for a rebuild slot."
    """

    def __init__(self, spec: dict[str, Any]):
        self.name = spec.get("name", "")
        self.category = spec.get("category", "Generic")
        self.priority = spec.get("priority", 100)
        self.patterns = tuple(spec.get("patterns", []))
        self.remediation = spec.get("remediation", "")
        self.spec = spec

    def explain(self, condition, volume, context):
        return {
            "remediation": self.remediation.format(
                volume=volume.name,
                size=str(volume.size),
                disk_selector=",".join(volume.disk_selector),
                node_selector=",".join(volume.node_selector),
                condition_type=condition.type,
                message=condition.message,
            )
        }


def build_yaml_rules(spec: Any) -> list[VolumeIssueRule]:
    """
    Accepts either a single dict or a list of dicts from YAML file.
    Returns a list of YamlVolumeIssueRule instances.
    """
    rules: list[VolumeIssueRule] = []
    if not spec:
        return rules
    if isinstance(spec, dict):
        rules.append(YamlVolumeIssueRule(spec))
    elif isinstance(spec, list):
        for item in spec:
            if not isinstance(item, dict):
                raise RuleContractError("Each YAML rule must be a dict")
            rules.append(YamlVolumeIssueRule(item))
    else:
        raise RuleContractError("YAML content must be a dict or a list of dicts")
    return rules


def _template_fields(template: str) -> set[str]:
    return {
        field.split(".")[0].split("[")[0]
        for _, field, _, _ in string.Formatter().parse(template)
        if field is not None
    }


def validate_rule(rule: VolumeIssueRule):
    for field in ("name", "category", "priority", "patterns"):
        if not hasattr(rule, field):
            raise RuleContractError(f"Rule {rule} missing required field '{field}'")

    if not isinstance(rule.name, str) or not rule.name:
        raise RuleContractError("Rule.name must be a non-empty string")
    if not isinstance(rule.category, str) or not rule.category:
        raise RuleContractError(f"Rule {rule.name}.category must be a non-empty string")
    if isinstance(rule.priority, bool) or not isinstance(rule.priority, int):
        raise RuleContractError(f"Rule {rule.name}.priority must be an integer")
    if not (0 <= rule.priority <= 1000):
        raise RuleContractError(f"Rule {rule.name}.priority must be between 0 and 1000")
    if not isinstance(rule.patterns, (tuple, list)) or not all(
        isinstance(p, str) and p for p in rule.patterns
    ):
        raise RuleContractError(
            f"Rule {rule.name}.patterns must be a list of non-empty strings"
        )

    if isinstance(rule, YamlVolumeIssueRule):
        if not rule.patterns:
            raise RuleContractError(f"Rule {rule.name} declares no patterns")
        if not isinstance(rule.remediation, str) or not rule.remediation:
            raise RuleContractError(
                f"Rule {rule.name}.remediation must be a non-empty string"
            )
        try:
            unknown = _template_fields(rule.remediation) - TEMPLATE_FIELDS
        except ValueError as exc:
            raise RuleContractError(
                f"Rule {rule.name}.remediation is not a valid template: {exc}"
            ) from exc
        if unknown:
            raise RuleContractError(
                f"Rule {rule.name}.remediation uses unknown fields: {sorted(unknown)}"
            )
        # explain() renders every field as a string
        try:
            rule.remediation.format(**{name: "" for name in TEMPLATE_FIELDS})
        except (KeyError, ValueError, AttributeError, IndexError) as exc:
            raise RuleContractError(
                f"Rule {rule.name}.remediation cannot be rendered: {exc}"
            ) from exc


def load_rules(rule_folder=None) -> list[VolumeIssueRule]:
    if rule_folder is None:
        rule_folder = os.path.join(os.path.dirname(__file__), "rules")

    rules: list[VolumeIssueRule] = []

    # ---- Python rules ----
    for file in sorted(glob.glob(os.path.join(rule_folder, "*.py"))):
        if os.path.basename(file) in ("base_rule.py", "__init__.py"):
            continue
        module_name = os.path.splitext(os.path.basename(file))[0]
        spec = importlib.util.spec_from_file_location(module_name, file)
        if spec is None or spec.loader is None:
            continue
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        for attr in dir(module):
            cls = getattr(module, attr)
            if (
                isinstance(cls, type)
                and issubclass(cls, VolumeIssueRule)
                and cls is not VolumeIssueRule
                and cls is not YamlVolumeIssueRule
                and cls.__module__ == module_name
            ):
                rules.append(cls())

    # ---- YAML rules ----
    yaml_files = glob.glob(os.path.join(rule_folder, "*.yaml")) + glob.glob(
        os.path.join(rule_folder, "*.yml")
    )
    for yfile in sorted(yaml_files):
        with open(yfile, encoding="utf-8") as f:
            spec = yaml.safe_load(f)
            if spec:  # skip empty YAML files
                rules.extend(build_yaml_rules(spec))

    # ---- CONTRACT VALIDATION ----
    for rule in rules:
        validate_rule(rule)

    logger.debug("loaded %d remediation rules from %s", len(rules), rule_folder)
    return rules
