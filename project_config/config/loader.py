"""
Configuration loader for project config files.

Loads and parses:
- project.yaml (root document, YAML format)
- every document listed under ``imports``, recursively, relative to the
  importing file

and composes them into the desired config tree.
"""

import datetime
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import yaml

from ..errors import ErrorCode, ParseError, PathSafetyError

logger = logging.getLogger(__name__)

IMPORTS_KEY = "imports"


class StringKeyLoader(yaml.SafeLoader):
    """
    Safe YAML loader that turns mapping keys into strings as they are read.

    Keys that become the same string (``1`` and ``"1"``) are an error rather
    than silently overwriting each other.
    """

    def construct_mapping(self, node, deep=False):
        if not isinstance(node, yaml.MappingNode):
            raise yaml.constructor.ConstructorError(
                None, None, f"expected a mapping node, but found {node.id}", node.start_mark
            )

        # Resolve << merge keys first; merged entries come before the node's own
        self.flatten_mapping(node)

        mapping = {}
        raw_keys = {}
        for key_node, value_node in node.value:
            raw_key = self.construct_object(key_node, deep=True)
            key = raw_key.isoformat() if isinstance(raw_key, (datetime.date, datetime.datetime)) else str(raw_key)

            previous = raw_keys.get(key, raw_key)
            if type(previous) is not type(raw_key) or previous != raw_key:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping", node.start_mark,
                    f"keys {previous!r} and {raw_key!r} both read as {key!r}", key_node.start_mark
                )

            raw_keys[key] = raw_key
            mapping[key] = self.construct_object(value_node, deep=deep)

        return mapping


class YamlDocumentParser:
    """Parses and dumps config documents as YAML."""

    def parse(self, contents: bytes, source: str = "<string>") -> Dict[str, Any]:
        """
        Parse a YAML document into a config tree.

        Args:
            contents: Raw document bytes
            source: Name used in error messages

        Returns:
            Config tree with string keys (empty dict for an empty document)

        Raises:
            ParseError: If the YAML is malformed, not a mapping or has keys
                that read as the same string
        """
        try:
            data = yaml.load(contents, Loader=StringKeyLoader)
        except yaml.YAMLError as e:
            raise ParseError(source, str(e)) from e

        if data is None:
            return {}

        if not isinstance(data, dict):
            raise ParseError(
                source,
                f"top level must be a mapping, got {type(data).__name__}",
                code=ErrorCode.INVALID_DOCUMENT
            )

        return _normalize_values(data)

    def serialize(self, tree: Dict[str, Any]) -> bytes:
        """Dump a config tree as block-style YAML."""
        return yaml.safe_dump(
            tree,
            default_flow_style=False,
            sort_keys=False,
            indent=2,
            allow_unicode=True
        ).encode("utf-8")


def _normalize_values(value: Any) -> Any:
    # Timestamps become ISO strings so the stored JSON snapshot round-trips
    if isinstance(value, dict):
        return {k: _normalize_values(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize_values(v) for v in value]
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return value
