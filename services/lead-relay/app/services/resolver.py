"""
Dotted-path lookups into arbitrary JSON payloads
"""
from typing import Any, Iterable, Optional


def resolve_path(root: Any, path: Optional[str]) -> Any:
    """
    Walk `root` along a dotted path such as "body.contact.email".

    Digit-only segments index into lists ("items.0.sku"). Returns None when the
    root is None, the path is empty, or any segment is missing.
    """
    if root is None or not path:
        return None

    current = root
    for segment in path.split("."):
        if isinstance(current, dict):
            if segment not in current:
                return None
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            index = int(segment)
            if index >= len(current):
                return None
            current = current[index]
        else:
            return None
    return current


def find_first_value(root: Any, keys: Iterable[str]) -> Any:
    """Depth-first search for the first non-empty scalar stored under any of `keys` (case-insensitive)"""
    return _search(root, {key.lower() for key in keys})


def _search(node: Any, wanted: set) -> Any:
    if isinstance(node, dict):
        for key, value in node.items():
            if isinstance(key, str) and key.lower() in wanted and value not in (None, "") and not isinstance(value, (dict, list)):
                return value
        children = list(node.values())
    elif isinstance(node, list):
        children = node
    else:
        return None

    for child in children:
        found = _search(child, wanted)
        if found is not None:
            return found
    return None
