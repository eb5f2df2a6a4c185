from typing import Any

# ----------------------------
# Best-effort accessors over nested documents
# ----------------------------


def nested_get(doc: Any, *path: str) -> tuple[Any, bool]:
    """
    Walk a path of keys through nested dicts.

    Returns (value, True) when every key is present, otherwise (None, False).
    Never raises for missing intermediate nodes or non-dict values.
    """
    current = doc
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return None, False
        current = current[key]
    return current, True


def nested_string(doc: Any, *path: str) -> tuple[str, bool]:
    value, found = nested_get(doc, *path)
    if not found or not isinstance(value, str):
        return "", False
    return value, True


def to_float(value: Any) -> tuple[float, bool]:
    """
    Normalize a float, int or numeric string to float.
    Booleans and every other representation are treated as not found.
    """
    if isinstance(value, bool):
        return 0.0, False
    if isinstance(value, (int, float)):
        return float(value), True
    if isinstance(value, str):
        try:
            return float(value.strip()), True
        except ValueError:
            return 0.0, False
    return 0.0, False


def nested_float(doc: Any, *path: str) -> tuple[float, bool]:
    value, found = nested_get(doc, *path)
    if not found:
        return 0.0, False
    return to_float(value)


def nested_int(doc: Any, *path: str) -> tuple[int, bool]:
    number, found = nested_float(doc, *path)
    if not found:
        return 0, False
    return int(number), True


def nested_map(doc: Any, *path: str) -> tuple[dict[str, Any], bool]:
    value, found = nested_get(doc, *path)
    if not found or not isinstance(value, dict):
        return {}, False
    return value, True


def nested_list(doc: Any, *path: str) -> tuple[list[Any], bool]:
    value, found = nested_get(doc, *path)
    if not found or not isinstance(value, list):
        return [], False
    return value, True


def nested_string_list(doc: Any, *path: str) -> tuple[list[str], bool]:
    """
    Like nested_list, but keeps only string members.
    """
    values, found = nested_list(doc, *path)
    if not found:
        return [], False
    return [v for v in values if isinstance(v, str)], True


def get_name(obj: Any) -> str:
    name, _ = nested_string(obj, "metadata", "name")
    return name


def get_namespace(obj: Any) -> str:
    namespace, _ = nested_string(obj, "metadata", "namespace")
    return namespace
