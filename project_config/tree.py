"""
Path tree helpers.

A path tree is a plain nested ``dict`` whose leaves are scalars (or opaque
sequences). Nodes are addressed with dot-delimited paths such as
``sections.news.handle``. Every function here works on the tree passed in
and touches nothing else.
"""

import json
from typing import Any, Dict, List, Optional

from .errors import InvalidPathError

PATH_DELIMITER = "."


def split_path(path: str) -> List[str]:
    """
    Split a dot-delimited path into its segments.

    Raises:
        InvalidPathError: If the path is empty or has an empty segment
    """
    if not path:
        raise InvalidPathError(path)

    segments = path.split(PATH_DELIMITER)
    if any(not segment for segment in segments):
        raise InvalidPathError(path)

    return segments


def parent_path(path: str) -> str:
    """
    Return the immediate parent of a path.

    A single-segment path is its own parent.
    """
    return path.rsplit(PATH_DELIMITER, 1)[0]


def path_depth(path: str) -> int:
    """Number of segments in a path."""
    return path.count(PATH_DELIMITER) + 1


def get_value(tree: Dict[str, Any], path: str) -> Optional[Any]:
    """
    Read the value stored at ``path``.

    Returns:
        The scalar or subtree at the path, or None when any segment is missing
    """
    node: Any = tree
    for segment in split_path(path):
        if not isinstance(node, dict) or segment not in node:
            return None
        node = node[segment]

    return node


def set_value(tree: Dict[str, Any], path: str, value: Any) -> None:
    """
    Store ``value`` at ``path``, creating intermediate subtrees.

    Whatever previously lived at the path (or at an intermediate segment)
    is overwritten, so a scalar may become a subtree and vice versa.
    """
    segments = split_path(path)
    node = tree

    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            child = {}
            node[segment] = child
        node = child

    node[segments[-1]] = value


def delete_value(tree: Dict[str, Any], path: str) -> None:
    """Remove the node at ``path``; missing paths are ignored."""
    segments = split_path(path)
    node: Any = tree

    for segment in segments[:-1]:
        node = node.get(segment)
        if not isinstance(node, dict):
            return

    node.pop(segments[-1], None)


def flatten(tree: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """
    Flatten a tree into a ``{path: leaf}`` mapping.

    Subtrees are walked recursively and only leaves are emitted, so an
    empty subtree produces nothing.
    """
    result: Dict[str, Any] = {}

    for key, value in tree.items():
        this_path = f"{prefix}{PATH_DELIMITER}{key}" if prefix else str(key)

        if isinstance(value, dict):
            result.update(flatten(value, this_path))
        else:
            result[this_path] = value

    return result


def unflatten(leaves: Dict[str, Any]) -> Dict[str, Any]:
    """Rebuild a tree from a ``{path: leaf}`` mapping."""
    tree: Dict[str, Any] = {}
    for path, value in leaves.items():
        set_value(tree, path, value)
    return tree


def prune_empty(tree: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove empty subtrees in place, bottom-up.

    Returns:
        The same tree, for chaining
    """
    for key in list(tree.keys()):
        value = tree[key]
        if isinstance(value, dict):
            prune_empty(value)
            if not value:
                del tree[key]

    return tree


def is_present(value: Any) -> bool:
    """Whether a looked-up value counts as existing (empty subtrees do not)."""
    if value is None:
        return False
    if isinstance(value, dict) and not value:
        return False
    return True


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def values_equal(a: Any, b: Any) -> bool:
    """
    Structural equality of two config values.

    Compared through their canonical JSON encoding, so key order does not
    matter while ``1``, ``1.0``, ``True`` and ``"1"`` all stay distinct.
    """
    return _canonical(a) == _canonical(b)
