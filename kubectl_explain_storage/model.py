import json
from typing import Any

import yaml

from kubectl_explain_storage.errors import CollectionError

# ----------------------------
# Parsing utilities
# ----------------------------


def load_document(path: str) -> Any:
    """
    Read a JSON or YAML document, as produced by `kubectl get -o json|yaml`.
    """
    with open(path, encoding="utf-8") as f:
        if path.endswith((".yaml", ".yml")):
            return yaml.safe_load(f)
        return json.load(f)


def normalize_items(doc: Any) -> list[dict[str, Any]]:
    if doc is None:
        return []
    if isinstance(doc, list):
        # Already a list of objects
        return [d for d in doc if isinstance(d, dict)]
    if isinstance(doc, dict):
        if str(doc.get("kind") or "").endswith("List") or "items" in doc:
            items = doc.get("items") or []
            return [d for d in items if isinstance(d, dict)]
        return [doc]
    return []


def load_collection(collection: str, path: str) -> list[dict[str, Any]]:
    """
    Load one resource collection, raising CollectionError on any failure so
    the caller can record it and carry on with the other collections.
    """
    try:
        doc = load_document(path)
    except OSError as exc:
        raise CollectionError(collection, exc.strerror or str(exc)) from exc
    except (json.JSONDecodeError, UnicodeDecodeError, yaml.YAMLError) as exc:
        raise CollectionError(collection, f"malformed document: {exc}") from exc

    if not isinstance(doc, (dict, list)) and doc is not None:
        raise CollectionError(collection, "expected an object or a list of objects")
    return normalize_items(doc)
