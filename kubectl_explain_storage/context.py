import logging
import os

from kubectl_explain_storage.errors import CollectionError
from kubectl_explain_storage.model import load_collection
from kubectl_explain_storage.snapshot import COLLECTIONS, ClusterSnapshot

logger = logging.getLogger(__name__)

_EXTENSIONS = (".json", ".yaml", ".yml")


def _find_in_dir(directory: str, collection: str) -> str | None:
    for ext in _EXTENSIONS:
        candidate = os.path.join(directory, collection + ext)
        if os.path.exists(candidate):
            return candidate
    return None


def collection_paths(args) -> dict[str, str | None]:
    """
    Resolve one file per collection. An explicit per-collection argument
    wins over the snapshot directory.
    """
    paths: dict[str, str | None] = {}
    directory = getattr(args, "snapshot", None)
    for collection in COLLECTIONS:
        explicit = getattr(args, collection, None)
        if explicit:
            paths[collection] = explicit
        elif directory:
            paths[collection] = _find_in_dir(directory, collection)
        else:
            paths[collection] = None
    return paths


def build_snapshot(args) -> ClusterSnapshot:
    snapshot = ClusterSnapshot()

    for collection, path in collection_paths(args).items():
        if path is None:
            snapshot.record_error(collection, "no input file given")
            logger.warning("no input for %s", collection)
            continue
        try:
            items = load_collection(collection, path)
        except CollectionError as exc:
            snapshot.record_error(collection, exc.reason)
            logger.warning("%s", exc)
            continue
        setattr(snapshot, collection, items)
        logger.debug("loaded %d %s from %s", len(items), collection, path)

    return snapshot
