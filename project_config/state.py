"""
Reconciliation state tracking.

Tracks what has been modified and still needs persisting, plus pass
telemetry.
"""

from typing import Optional

from .models import EventKind


class ConfigurationState:
    """
    Dirty flags and telemetry for a project config instance.
    """

    def __init__(self):
        """Initialize configuration state."""
        self.update_config: bool = False
        self.update_config_map: bool = False
        self.update_parsed_times: bool = False
        self.timestamp_updated: bool = False
        self.last_pass_success: Optional[bool] = None

        self.telemetry = self._empty_telemetry()

    @staticmethod
    def _empty_telemetry() -> dict:
        return {
            "total_passes": 0,
            "failed_passes": 0,
            "events": {kind.value: 0 for kind in EventKind},
            "last_pass_duration_ms": 0,
            "flushes": 0
        }

    @property
    def is_dirty(self) -> bool:
        return self.update_config or self.update_config_map or self.update_parsed_times

    def reset(self):
        """Reset state to initial values."""
        self.update_config = False
        self.update_config_map = False
        self.update_parsed_times = False
        self.timestamp_updated = False
        self.last_pass_success = None
        self.telemetry = self._empty_telemetry()

    def clear_dirty(self):
        """Clear persistence flags after a flush."""
        self.update_config = False
        self.update_config_map = False
        self.update_parsed_times = False
        self.telemetry["flushes"] += 1

    def record_event(self, kind: EventKind):
        self.telemetry["events"][kind.value] += 1

    def record_pass(self, success: bool, duration_ms: int):
        """
        Record pass telemetry.

        Args:
            success: Whether the pass completed
            duration_ms: Pass duration in milliseconds
        """
        self.telemetry["total_passes"] += 1
        self.telemetry["last_pass_duration_ms"] = duration_ms
        if not success:
            self.telemetry["failed_passes"] += 1
        self.last_pass_success = success

    def to_dict(self) -> dict:
        """
        Convert state to dictionary.

        Returns:
            State as dictionary with telemetry
        """
        return {
            "update_config": self.update_config,
            "update_config_map": self.update_config_map,
            "update_parsed_times": self.update_parsed_times,
            "timestamp_updated": self.timestamp_updated,
            "last_pass_success": self.last_pass_success,
            "telemetry": self.telemetry
        }
