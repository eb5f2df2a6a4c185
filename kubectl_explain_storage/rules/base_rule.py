from typing import Any

from kubectl_explain_storage.records import Condition, Volume


class VolumeIssueRule:
    """
    Base class for remediation rules applied to failed volume conditions.

    A rule recognises a condition by substrings of its message and turns it
    into remediation text. Rules are evaluated in ascending priority; the
    first match wins.
    """

    # ---- Metadata (mandatory) ----
    name: str = "BaseRule"
    category: str = "Generic"
    priority: int = 100

    # ---- Message substrings this rule recognises ----
    patterns: tuple[str, ...] = ()

    def matches(
        self, condition: Condition, volume: Volume, context: dict[str, Any]
    ) -> bool:
        return any(p in condition.message for p in self.patterns)

    def explain(
        self, condition: Condition, volume: Volume, context: dict[str, Any]
    ) -> dict[str, Any]:
        """
        context carries:
        {
          "disks": [Disk, ...]   # every disk with a status record, unfiltered
        }

        Must return:
        {
          "remediation": str,
          "evidence": {str: Any}   # optional
        }
        """
        raise NotImplementedError
