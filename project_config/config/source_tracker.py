"""
Configuration source attribution tracker.

Tracks which config file owns each top-level node so that writes land in
the file the node came from, without re-scanning the import graph.
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, Optional

from ..errors import ConfigLoadError, ErrorCode
from .loader import IMPORTS_KEY

if TYPE_CHECKING:
    from .loader import ImportResolver

logger = logging.getLogger(__name__)


class ConfigMap:
    """
    Maps top-level config nodes to their backing files.

    Nodes without an entry belong to the root file.
    """

    def __init__(self, root_file: Path, nodes: Optional[Dict[str, Path]] = None):
        """
        Initialize config map.

        Args:
            root_file: File that owns unmapped nodes
            nodes: Known node -> file entries
        """
        self.root_file = Path(root_file)
        self.nodes: Dict[str, Path] = dict(nodes or {})
        self.dirty = False

    def map_node(self, node: str, file: Path) -> None:
        """Record (or overwrite) the owning file of a top-level node."""
        self.nodes[node] = Path(file)
        self.dirty = True
        logger.debug(f"Mapped node '{node}' to {file}")

    def is_mapped(self, node: str) -> bool:
        return node in self.nodes

    def resolve(self, node: str) -> Path:
        """
        Get the file owning a top-level node.

        Returns:
            Mapped file, or the root file if the node is unmapped
        """
        return self.nodes.get(node, self.root_file)

    def regenerate(self, file_list: Iterable[Path], resolver: "ImportResolver") -> None:
        """
        Rebuild the whole map from the config files.

        Files are scanned in order, so later files win on conflicting nodes.

        Args:
            file_list: Config files in import order
            resolver: Resolver supplying parsed file contents
        """
        nodes: Dict[str, Path] = {}

        for file in file_list:
            for top_node in resolver.parse_file(file).keys():
                nodes[top_node] = Path(file)

        nodes.pop(IMPORTS_KEY, None)

        self.nodes = nodes
        self.dirty = True
        logger.debug(f"Regenerated config map with {len(nodes)} node(s)")

    def to_dict(self) -> Dict[str, str]:
        return {node: str(file) for node, file in self.nodes.items()}

    def to_bytes(self) -> bytes:
        """Serialize the map for the record store."""
        return json.dumps(self.to_dict(), indent=2).encode("utf-8")

    @classmethod
    def from_bytes(cls, root_file: Path, payload: Optional[bytes]) -> "ConfigMap":
        """
        Load a map from a record store payload.

        Raises:
            ConfigLoadError: If the payload is not a JSON object of strings
        """
        if not payload:
            return cls(root_file)

        try:
            data = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ConfigLoadError("config map", str(e), code=ErrorCode.CONFIG_MAP_CORRUPT) from e

        if not isinstance(data, dict) or not all(isinstance(v, str) for v in data.values()):
            raise ConfigLoadError("config map", "expected an object of file paths", code=ErrorCode.CONFIG_MAP_CORRUPT)

        return cls(root_file, {node: Path(file) for node, file in data.items()})
