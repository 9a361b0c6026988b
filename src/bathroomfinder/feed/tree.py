"""
In-place edits of a JSON tree addressed by slash-separated paths.

The streaming protocol sends `put` (replace the value at a path) and `patch`
(merge children into the value at a path) events. Replaying them over a local copy
of the collection lets the subscriber hand out full snapshots instead of diffs.
Dict insertion order is preserved, so children appear in the order the server
first reported them.
"""

from __future__ import annotations

from typing import Any

from bathroomfinder.feed.base import split_path


def apply_put(tree: Any, path: str, data: Any) -> Any:
    """Replace the node at `path` with `data` (None deletes it); return the new root."""
    parts = split_path(path)
    if not parts:
        return data

    root = tree if isinstance(tree, dict) else {}
    node = root
    for key in parts[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child

    if data is None:
        node.pop(parts[-1], None)
    else:
        node[parts[-1]] = data
    return root


def apply_patch(tree: Any, path: str, data: Any) -> Any:
    """Merge the children of `data` into the node at `path`; return the new root."""
    if not isinstance(data, dict):
        return apply_put(tree, path, data)
    prefix = "/".join(split_path(path))
    for key, value in data.items():
        tree = apply_put(tree, f"{prefix}/{key}" if prefix else key, value)
    return tree


def read_path(tree: Any, path: str) -> Any:
    """Return the node at `path`, or None when any segment is missing."""
    node = tree
    for key in split_path(path):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node
