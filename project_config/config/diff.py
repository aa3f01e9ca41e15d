"""
Diff engine for desired vs. stored config trees.

Both trees are flattened to leaves and compared; every differing leaf marks
its immediate parent path as added, changed or removed.
"""

import logging
from typing import Any, Dict, Iterable, List

from ..models import ChangeSet
from ..tree import flatten, parent_path, path_depth, values_equal

logger = logging.getLogger(__name__)

# Top-level keys that never take part in change detection
VOLATILE_KEYS = ("dateModified", "imports")


def _without_volatile_keys(tree: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in tree.items() if key not in VOLATILE_KEYS}


def _present_leaves(tree: Dict[str, Any]) -> Dict[str, Any]:
    # A null leaf reads back as None, which the reconciler treats as absent
    return {path: value for path, value in flatten(_without_volatile_keys(tree)).items() if value is not None}


def _dedup_deepest_first(paths: Iterable[str]) -> List[str]:
    # dict.fromkeys keeps first-seen order; sorted() is stable on ties
    unique = list(dict.fromkeys(paths))
    return sorted(unique, key=path_depth, reverse=True)


class DiffEngine:
    """Computes the pending change set between two config trees."""

    def diff(self, desired: Dict[str, Any], stored: Dict[str, Any]) -> ChangeSet:
        """
        Compare the desired tree against the stored tree.

        Args:
            desired: Config composed from the config files
            stored: Last applied config

        Returns:
            ChangeSet with immediate-parent paths, deepest first
        """
        flat_desired = _present_leaves(desired)
        flat_stored = _present_leaves(stored)

        added: List[str] = []
        changed: List[str] = []

        for path, value in flat_desired.items():
            immediate_parent = parent_path(path)

            if path not in flat_stored:
                added.append(immediate_parent)
            elif not values_equal(flat_stored[path], value):
                changed.append(immediate_parent)

            flat_stored.pop(path, None)

        # Whatever is left in stored has no counterpart in desired
        removed = [parent_path(path) for path in flat_stored]

        change_set = ChangeSet(
            added=_dedup_deepest_first(added),
            changed=_dedup_deepest_first(changed),
            removed=_dedup_deepest_first(removed)
        )

        logger.debug(
            f"Diff: {len(change_set.added)} added, "
            f"{len(change_set.changed)} changed, "
            f"{len(change_set.removed)} removed"
        )

        return change_set
