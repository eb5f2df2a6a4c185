from collections.abc import Callable, Iterable
from typing import Any

COLLECTIONS = ("nodes", "volumes", "replicas", "pvs", "pods")


class ClusterSnapshot:
    """
    Raw collections fetched for one inspection pass.

    Collections are read independently, so the snapshot is not point-in-time
    consistent. A collection that could not be read is empty and has its
    reason recorded in errors.
    """

    def __init__(
        self,
        nodes: list[dict[str, Any]] | None = None,
        volumes: list[dict[str, Any]] | None = None,
        replicas: list[dict[str, Any]] | None = None,
        pvs: list[dict[str, Any]] | None = None,
        pods: Iterable[dict[str, Any]]
        | Callable[[str], Iterable[dict[str, Any]]]
        | None = None,
        errors: dict[str, str] | None = None,
    ):
        self.nodes = nodes or []
        self.volumes = volumes or []
        self.replicas = replicas or []
        self.pvs = pvs or []
        self.pods = pods if pods is not None else []
        self.errors: dict[str, str] = dict(errors or {})

    def available(self, *collections: str) -> bool:
        return not any(c in self.errors for c in collections)

    def record_error(self, collection: str, reason: str) -> None:
        self.errors[collection] = reason
