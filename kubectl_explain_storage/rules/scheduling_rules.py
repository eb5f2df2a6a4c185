from kubectl_explain_storage.capacity import disk_pool_satisfying
from kubectl_explain_storage.rules.base_rule import VolumeIssueRule


class DiskTagMismatchRule(VolumeIssueRule):
    """
    Replicas cannot be placed because no disk satisfies the volume's disk
    selector, or the disks that do lack room.

    Signals:
    - condition message mentions unfulfilled tags or unmatched disks

    The remediation depends on the disk pool carrying every selector tag:
    - no such disk: tag more disks
    - free space below the volume size: expand capacity
    - otherwise the scheduler failure is unexplained: read manager logs
    """

    name = "DiskTagMismatch"
    category = "Scheduling"
    priority = 10
    patterns = ("tags not fulfilled", "no disk matches requirements")

    def explain(self, condition, volume, context):
        count, available = disk_pool_satisfying(
            volume.disk_selector, context.get("disks", [])
        )
        selector = ",".join(volume.disk_selector)

        if count == 0:
            remediation = (
                f"No disks found with required tags: {selector}. Add these tags "
                "to appropriate disks or modify volume to use different tags."
            )
        elif available < volume.size:
            remediation = (
                "Insufficient space on disks with required tags. "
                f"Available: {available}, Required: {volume.size}. "
                "Extend disk space or reduce volume size."
            )
        else:
            remediation = (
                "Disk tags match but scheduling failed. "
                "Check node conditions and Longhorn manager logs."
            )

        return {
            "remediation": remediation,
            "evidence": {
                "required_tags": list(volume.disk_selector),
                "available_disks": count,
                "available_bytes": float(available),
                "required_bytes": float(volume.size),
            },
        }


class InsufficientStorageRule(VolumeIssueRule):
    name = "InsufficientStorage"
    category = "Capacity"
    priority = 20
    patterns = ("insufficient storage",)

    def explain(self, condition, volume, context):
        return {
            "remediation": (
                f"Not enough storage space available for volume size {volume.size}. "
                "Extend storage on disks with appropriate tags or reduce volume size."
            ),
        }


class NodeTagMismatchRule(VolumeIssueRule):
    name = "NodeTagMismatch"
    category = "Scheduling"
    priority = 30
    patterns = ("specified node tag", "node tag")

    def explain(self, condition, volume, context):
        return {
            "remediation": (
                "Node selector tags not fulfilled: "
                f"{','.join(volume.node_selector)}. Add these tags to appropriate "
                "nodes or modify volume to use different node selector."
            ),
            "evidence": {"required_node_tags": list(volume.node_selector)},
        }
