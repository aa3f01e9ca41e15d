"""
File watcher for project config files.

Monitors the config directory for YAML changes and triggers a callback
once edits have settled.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Set

from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileSystemEvent

logger = logging.getLogger(__name__)

CONFIG_SUFFIXES = (".yaml", ".yml")

ReloadCallback = Callable[[List[str]], Awaitable[None]]


def is_config_file(path: Path, state_dir: Optional[Path] = None) -> bool:
    """Whether a changed path is a config document worth reacting to."""
    if path.suffix not in CONFIG_SUFFIXES or path.name.startswith("."):
        return False

    # Our own state files must not trigger reloads
    if state_dir is not None and state_dir in path.parents:
        return False

    return True


class ConfigFileHandler(FileSystemEventHandler):
    """Handles file system events for config files."""

    def __init__(
        self,
        callback: ReloadCallback,
        loop: asyncio.AbstractEventLoop,
        debounce_ms: int = 500,
        state_dir: Optional[Path] = None
    ):
        """
        Initialize file handler.

        Args:
            callback: Async function to call with the changed files
            loop: Event loop the callback runs on
            debounce_ms: Debounce delay in milliseconds
            state_dir: Directory whose files are ignored
        """
        super().__init__()
        self.callback = callback
        self.loop = loop
        self.debounce_ms = debounce_ms
        self.state_dir = state_dir
        self.pending_events: Set[str] = set()
        self.debounce_task: Optional[asyncio.Task] = None

    def on_any_event(self, event: FileSystemEvent):
        """Handle created, modified, moved and deleted files alike."""
        if event.is_directory:
            return

        paths = [event.src_path]
        if getattr(event, "dest_path", None):
            paths.append(event.dest_path)

        for raw_path in paths:
            path = Path(raw_path)
            if is_config_file(path, self.state_dir):
                logger.debug(f"Config file changed: {path}")
                # Observer runs on its own thread
                self.loop.call_soon_threadsafe(self.schedule, str(path))

    def schedule(self, path: str) -> None:
        """Record a changed file and restart the debounce timer."""
        self.pending_events.add(path)

        if self.debounce_task:
            self.debounce_task.cancel()

        self.debounce_task = self.loop.create_task(self._debounced_reload())

    async def _debounced_reload(self):
        """Execute debounced reload after delay."""
        try:
            await asyncio.sleep(self.debounce_ms / 1000.0)

            if self.pending_events:
                files = sorted(self.pending_events)
                self.pending_events.clear()

                logger.info(f"Triggering reconciliation for {len(files)} changed files")
                await self.callback(files)

        except asyncio.CancelledError:
            # Debounce was cancelled - another event came in
            pass
        except Exception as e:
            logger.error(f"Error in debounced reload: {e}")


class FileWatcher:
    """Watches config files and triggers reconciliation."""

    def __init__(
        self,
        config_dir: Path,
        reload_callback: ReloadCallback,
        debounce_ms: int = 500,
        state_dir: Optional[Path] = None
    ):
        """
        Initialize file watcher.

        Args:
            config_dir: Configuration directory to watch
            reload_callback: Async function to call on file changes
            debounce_ms: Debounce delay in milliseconds
            state_dir: Directory whose files are ignored
        """
        self.config_dir = config_dir
        self.reload_callback = reload_callback
        self.debounce_ms = debounce_ms
        self.state_dir = state_dir

        self.observer: Optional[Observer] = None
        self.handler: Optional[ConfigFileHandler] = None
        self.running = False

    def start(self):
        """Start file watcher. Must be called from a running event loop."""
        if self.running:
            logger.warning("File watcher already running")
            return

        logger.info(f"Starting file watcher for {self.config_dir}")

        self.handler = ConfigFileHandler(
            callback=self.reload_callback,
            loop=asyncio.get_running_loop(),
            debounce_ms=self.debounce_ms,
            state_dir=self.state_dir
        )

        self.observer = Observer()
        self.observer.schedule(
            self.handler,
            path=str(self.config_dir),
            recursive=True
        )

        self.observer.start()
        self.running = True

        logger.info("File watcher started")

    def stop(self):
        """Stop file watcher."""
        if not self.running:
            return

        logger.info("Stopping file watcher")

        if self.observer:
            self.observer.stop()
            self.observer.join()

        self.running = False
        logger.info("File watcher stopped")

    def is_running(self) -> bool:
        return self.running
