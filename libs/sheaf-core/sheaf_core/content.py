"""Helpers for structured entry content."""

from typing import Any


def flatten(content: Any, prefix: str = "") -> dict[str, Any]:
    """
    Flatten nested content into a key-path map.

    ``{"a": {"b": 1}, "tags": ["x"]}`` becomes ``{"a.b": 1, "tags.0": "x"}``.
    Empty mappings and lists are kept as values so no key is lost.
    """
    if isinstance(content, dict):
        items = ((str(k), v) for k, v in content.items())
    elif isinstance(content, list):
        items = ((str(i), v) for i, v in enumerate(content))
    else:
        return {prefix: content} if prefix else {}

    flat: dict[str, Any] = {}
    empty = True
    for key, value in items:
        empty = False
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, (dict, list)) and value:
            flat.update(flatten(value, path))
        else:
            flat[path] = value
    if empty and prefix:
        flat[prefix] = content
    return flat


def unflatten(flat: dict[str, Any]) -> dict[str, Any]:
    """Rebuild nested content from a key-path map produced by `flatten`."""
    root: dict[str, Any] = {}
    for path, value in flat.items():
        keys = path.split(".")
        node: Any = root
        for key in keys[:-1]:
            child = node.get(key)
            if child is None:
                child = {}
                node[key] = child
            node = child
        node[keys[-1]] = value
    return _lists(root)


def _lists(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    converted = {k: _lists(v) for k, v in node.items()}
    if converted and all(k.isdigit() for k in converted):
        indexes = sorted(converted, key=int)
        if indexes == [str(i) for i in range(len(indexes))]:
            return [converted[i] for i in indexes]
    return converted
