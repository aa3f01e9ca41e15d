"""
Record stores for the stored config snapshot and the config map.

Both records are opaque byte payloads; encoding is the caller's business.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

from .config.loader import LocalFileSystem

logger = logging.getLogger(__name__)

SNAPSHOT_RECORD = "config"
CONFIG_MAP_RECORD = "configMap"


class RecordStore(Protocol):
    """Persistence for the stored snapshot and config map."""

    def load_snapshot(self) -> Optional[bytes]: ...

    def save_snapshot(self, payload: bytes) -> None: ...

    def load_config_map(self) -> Optional[bytes]: ...

    def save_config_map(self, payload: bytes) -> None: ...


class MemoryRecordStore:
    """Keeps records in memory, mostly for tests and throwaway runs."""

    def __init__(self, snapshot: Optional[bytes] = None, config_map: Optional[bytes] = None):
        self.records: Dict[str, Optional[bytes]] = {
            SNAPSHOT_RECORD: snapshot,
            CONFIG_MAP_RECORD: config_map,
        }
        self.save_count = 0

    def load_snapshot(self) -> Optional[bytes]:
        return self.records[SNAPSHOT_RECORD]

    def save_snapshot(self, payload: bytes) -> None:
        self.records[SNAPSHOT_RECORD] = payload
        self.save_count += 1

    def load_config_map(self) -> Optional[bytes]:
        return self.records[CONFIG_MAP_RECORD]

    def save_config_map(self, payload: bytes) -> None:
        self.records[CONFIG_MAP_RECORD] = payload
        self.save_count += 1


class JsonFileRecordStore:
    """
    Stores each record as a file in a state directory.

    Writes go through the file system's atomic write; failures propagate.
    """

    def __init__(self, state_dir: Path, fs: Optional[LocalFileSystem] = None):
        """
        Initialize file record store.

        Args:
            state_dir: Directory for record files
            fs: File system access
        """
        self.state_dir = Path(state_dir)
        self.fs = fs or LocalFileSystem()
        self.snapshot_path = self.state_dir / "stored-config.json"
        self.config_map_path = self.state_dir / "config-map.json"

    def load_snapshot(self) -> Optional[bytes]:
        return self.fs.read(self.snapshot_path)

    def save_snapshot(self, payload: bytes) -> None:
        self.fs.write(self.snapshot_path, payload)
        logger.debug(f"Saved stored config to {self.snapshot_path}")

    def load_config_map(self) -> Optional[bytes]:
        return self.fs.read(self.config_map_path)

    def save_config_map(self, payload: bytes) -> None:
        self.fs.write(self.config_map_path, payload)
        logger.debug(f"Saved config map to {self.config_map_path}")
