class CollectionError(Exception):
    """
    A single resource collection could not be listed or parsed.
    Other collections are unaffected.
    """

    def __init__(self, collection: str, reason: str):
        super().__init__(f"failed to load {collection}: {reason}")
        self.collection = collection
        self.reason = reason


class RuleContractError(ValueError):
    """
    A remediation rule does not satisfy the rule contract.
    """
