from kubectl_explain_storage.rules.base_rule import VolumeIssueRule


class VolumeCreationErrorRule(VolumeIssueRule):
    name = "VolumeCreationError"
    category = "Lifecycle"
    priority = 40
    patterns = ("error creating", "create volume error")

    def explain(self, condition, volume, context):
        return {
            "remediation": (
                "Error during volume creation. Check Longhorn manager logs for "
                "details. Try deleting and recreating the volume."
            ),
        }


class VolumeAttachErrorRule(VolumeIssueRule):
    name = "VolumeAttachError"
    category = "Lifecycle"
    priority = 50
    patterns = ("error attaching",)

    def explain(self, condition, volume, context):
        return {
            "remediation": (
                "Error attaching volume. Check that the node has access to the "
                "storage. Try restarting the Longhorn manager on the node."
            ),
        }
