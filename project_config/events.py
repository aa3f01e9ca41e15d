"""
Config change event registry.

Handlers are bound to path patterns per event kind. Patterns are literal
dot paths where ``{uid}`` stands for one identifier segment, e.g.
``sections.{uid}`` or ``sections.{uid}.entryTypes.{uid}``. Captured
identifiers are handed to the handler in declaration order.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from .models import ConfigEvent, EventKind

logger = logging.getLogger(__name__)

UID_TOKEN = "{uid}"
UID_PATTERN = r"[a-zA-Z0-9_-]+"

ChangeHandler = Callable[[ConfigEvent], None]


def compile_path_pattern(path: str) -> "re.Pattern[str]":
    """
    Compile a handler path pattern into a regex.

    The regex matches the pattern at the start of an observed path, followed
    either by the end of the path or by a ``.`` and an arbitrary remainder
    captured as ``extra``.

    Examples:
        >>> compile_path_pattern("sections.{uid}").match("sections.abc.name").group("path")
        'sections.abc'
    """
    literal = re.escape(path).replace(re.escape(UID_TOKEN), f"({UID_PATTERN})")
    return re.compile(rf"^(?P<path>{literal})(?P<extra>\..+)?$")


@dataclass(frozen=True)
class EventBinding:
    """A handler bound to one event kind and path pattern."""

    kind: EventKind
    pattern: str
    matcher: "re.Pattern[str]"
    handler: ChangeHandler
    data: Any = None


@dataclass(frozen=True)
class Invocation:
    """
    One step of a dispatch.

    Either a handler call (``binding`` set) or a request to process the
    broader ``reprocess_path`` as a unit.
    """

    path: str
    binding: Optional[EventBinding] = None
    tokens: tuple = ()
    reprocess_path: Optional[str] = None

    @property
    def is_reprocess(self) -> bool:
        return self.reprocess_path is not None


class EventRegistry:
    """Registry of config change handlers."""

    def __init__(self):
        """Initialize an empty registry."""
        self.bindings: List[EventBinding] = []
        self.after_apply_listeners: List[Callable[[], None]] = []

    def subscribe(self, kind: EventKind, path: str, handler: ChangeHandler, data: Any = None) -> EventBinding:
        """
        Register a handler for a path pattern.

        Args:
            kind: Event kind to listen for
            path: Path pattern, may contain ``{uid}`` tokens
            handler: Callable receiving the ConfigEvent
            data: Opaque data exposed to the handler as ``event.data``

        Returns:
            The created binding
        """
        binding = EventBinding(
            kind=EventKind(kind),
            pattern=path,
            matcher=compile_path_pattern(path),
            handler=handler,
            data=data
        )
        self.bindings.append(binding)
        logger.debug(f"Registered {binding.kind.value} handler for '{path}'")
        return binding

    def on_add(self, path: str, handler: ChangeHandler, data: Any = None) -> EventBinding:
        return self.subscribe(EventKind.ADD, path, handler, data)

    def on_update(self, path: str, handler: ChangeHandler, data: Any = None) -> EventBinding:
        return self.subscribe(EventKind.UPDATE, path, handler, data)

    def on_remove(self, path: str, handler: ChangeHandler, data: Any = None) -> EventBinding:
        return self.subscribe(EventKind.REMOVE, path, handler, data)

    def on_after_apply(self, callback: Callable[[], None]) -> None:
        """Register a callback fired after pending changes have been applied."""
        self.after_apply_listeners.append(callback)

    def resolve(self, kind: EventKind, path: str) -> List[Invocation]:
        """
        Work out what a change at ``path`` triggers, without running anything.

        A binding matching only a prefix of the path asks for that prefix to
        be processed instead of calling its handler.

        Returns:
            Invocations in registration order
        """
        invocations: List[Invocation] = []

        for binding in self.bindings:
            if binding.kind != kind:
                continue

            match = binding.matcher.match(path)
            if not match:
                continue

            if match.group("extra") is not None:
                invocations.append(Invocation(path=path, reprocess_path=match.group("path")))
                continue

            # groups() is (path, *uid tokens, extra)
            tokens = tuple(match.groups()[1:-1])
            invocations.append(Invocation(path=path, binding=binding, tokens=tokens))

        return invocations

    def has_listener(self, path: str) -> bool:
        """Whether any binding matches ``path`` exactly."""
        for binding in self.bindings:
            match = binding.matcher.match(path)
            if match and match.group("extra") is None:
                return True
        return False

    def fire_after_apply(self) -> None:
        """Call every after-apply callback in registration order."""
        for callback in self.after_apply_listeners:
            callback()
