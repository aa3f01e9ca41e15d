"""
Reconciliation pass.

Walks a change set, classifies every path as add/update/remove, dispatches
the matching handlers and writes the settled value back into the stored
config. Each path is dispatched at most once per pass.
"""

import logging
from typing import Any, Callable, List, Optional, Set, Tuple

from ..events import EventRegistry
from ..models import ChangeSet, ConfigEvent, EventKind
from ..tree import is_present, path_depth, values_equal

logger = logging.getLogger(__name__)

ValueReader = Callable[[str], Any]
ValueWriter = Callable[[str, Any], None]


class ReconcilePass:
    """Applies pending config changes path by path."""

    def __init__(
        self,
        registry: EventRegistry,
        read_stored: ValueReader,
        read_desired: ValueReader,
        write_stored: ValueWriter
    ):
        """
        Initialize reconcile pass.

        Args:
            registry: Handlers to dispatch to
            read_stored: Returns the stored value at a path
            read_desired: Returns the desired value at a path
            write_stored: Stores a value at a path (None deletes it)
        """
        self.registry = registry
        self.read_stored = read_stored
        self.read_desired = read_desired
        self.write_stored = write_stored

        self.processed: Set[str] = set()
        self.dispatched: List[Tuple[EventKind, str]] = []

    def reset(self) -> None:
        """Forget everything processed, starting a new pass."""
        self.processed.clear()
        self.dispatched.clear()

    def forget(self, path: str) -> None:
        """Allow ``path`` to be processed again in this pass."""
        self.processed.discard(path)

    def run(self, change_set: ChangeSet) -> int:
        """
        Process a whole change set.

        Removals settle first, then changes, then additions; each list is
        already ordered deepest first.

        Returns:
            Number of events dispatched during the run
        """
        before = len(self.dispatched)

        for category, paths in change_set.by_category():
            if not paths:
                continue

            logger.info(f"Parsing {len(paths)} {category.value} configuration items")
            for path in paths:
                self.process_path(path)

        return len(self.dispatched) - before

    def process_path(self, path: str) -> Optional[ConfigEvent]:
        """
        Process config changes for a given path.

        Returns:
            The dispatched event, or None when the path was already processed
            or nothing changed
        """
        if path in self.processed:
            return None

        self.processed.add(path)

        old_value = self.read_stored(path)
        new_value = self.read_desired(path)
        kind = self._classify(old_value, new_value)

        if kind is None:
            return None

        event = ConfigEvent(kind=kind, path=path, old_value=old_value, new_value=new_value)
        self.dispatched.append((kind, path))
        logger.debug(f"Dispatching {kind.value} for '{path}'")

        self._dispatch(event)
        self._process_children(path, old_value, new_value)

        self.write_stored(path, None if kind == EventKind.REMOVE else event.new_value)
        return event

    @staticmethod
    def _classify(old_value: Any, new_value: Any) -> Optional[EventKind]:
        old_present = is_present(old_value)
        new_present = is_present(new_value)

        if old_present and not new_present:
            return EventKind.REMOVE
        if new_present and not old_present:
            return EventKind.ADD
        if old_present and new_present and not values_equal(old_value, new_value):
            return EventKind.UPDATE
        return None

    def _dispatch(self, event: ConfigEvent) -> None:
        for invocation in self.registry.resolve(event.kind, event.path):
            if invocation.is_reprocess:
                # A broader pattern matched: settle the prefix as a unit
                self.process_path(invocation.reprocess_path)
                continue

            binding = invocation.binding
            event.token_matches = list(invocation.tokens)
            event.data = binding.data
            try:
                binding.handler(event)
            finally:
                event.token_matches = []
                event.data = None

    def _process_children(self, path: str, old_value: Any, new_value: Any) -> None:
        """Re-enter for changed descendants that have their own listener, deepest first."""
        listened: List[str] = []
        self._collect_listened(path, old_value, new_value, listened)

        for child_path in sorted(listened, key=path_depth, reverse=True):
            self.process_path(child_path)

    def _collect_listened(self, path: str, old_value: Any, new_value: Any, listened: List[str]) -> None:
        keys: List[str] = []
        for value in (old_value, new_value):
            if isinstance(value, dict):
                keys.extend(k for k in value if k not in keys)

        for key in keys:
            old_child = old_value.get(key) if isinstance(old_value, dict) else None
            new_child = new_value.get(key) if isinstance(new_value, dict) else None
            if values_equal(old_child, new_child):
                continue

            child_path = f"{path}.{key}"
            if child_path not in self.processed and self.registry.has_listener(child_path):
                listened.append(child_path)

            self._collect_listened(child_path, old_child, new_child, listened)
