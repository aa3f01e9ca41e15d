#!/usr/bin/env python3
"""
Project Config CLI

Command-line interface for inspecting and applying project config changes.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import yaml

from .errors import ConfigError
from .models import ProjectConfigSettings
from .service import ProjectConfig
from .config.file_watcher import FileWatcher

logger = logging.getLogger(__name__)


class ProjectConfigCLI:
    """CLI client for project config."""

    def __init__(self):
        """Initialize CLI client."""
        self.service: Optional[ProjectConfig] = None

    def build_service(self, args) -> ProjectConfig:
        settings = ProjectConfigSettings.from_env(
            config_dir=Path(args.config_dir) if args.config_dir else None,
            state_dir=Path(args.state_dir) if args.state_dir else None,
            strict_imports=True if args.strict_imports else None
        )
        return ProjectConfig(settings)

    def cmd_status(self, args):
        """Show whether config changes are pending."""
        if not self.service.is_update_pending():
            print("✅ Stored config is up to date")
            return 0

        print("⚠️  Pending config changes")
        for category, items in self.service.get_pending_change_summary().items():
            if not items:
                continue
            print(f"\n{category.upper()}:")
            for item in sorted(items):
                print(f"  {item}")

        return 1 if args.exit_code else 0

    def cmd_diff(self, args):
        """Print the full pending change set."""
        changes = self.service.get_pending_changes()

        if args.json:
            print(json.dumps(changes.model_dump(), indent=2))
            return 0

        if changes.is_empty:
            print("✅ No pending changes")
            return 0

        for category, paths in changes.by_category():
            for path in paths:
                marker = {"removed": "-", "changed": "~", "added": "+"}[category.value]
                print(f"{marker} {path}")

        return 0

    def cmd_apply(self, args):
        """Apply pending changes and persist the result."""
        changes = self.service.apply_pending_changes(check_staleness=args.if_modified)
        self.service.save_modified_config_data()

        events = self.service.state.telemetry["events"]
        print(
            f"✅ Applied {len(changes.removed)} removed, {len(changes.changed)} changed, "
            f"{len(changes.added)} added item(s)"
        )
        print(f"  Events: {events['add']} add, {events['update']} update, {events['remove']} remove")
        return 0

    def cmd_get(self, args):
        """Print a config value."""
        value = self.service.get(args.path, from_desired=args.desired)

        if value is None:
            print(f"❌ Nothing at {args.path}")
            return 1

        if args.json:
            print(json.dumps(value, indent=2, default=str))
        elif isinstance(value, (dict, list)):
            print(yaml.safe_dump(value, default_flow_style=False, sort_keys=False).rstrip())
        else:
            print(value)
        return 0

    def cmd_set(self, args):
        """Write a config value and apply it."""
        value = yaml.safe_load(args.value)
        self.service.save(args.path, value)
        self.service.save_modified_config_data()
        print(f"✅ Saved {args.path}")
        return 0

    def cmd_remove(self, args):
        """Remove a config value and apply the removal."""
        self.service.remove(args.path)
        self.service.save_modified_config_data()
        print(f"✅ Removed {args.path}")
        return 0

    def cmd_regenerate(self, args):
        """Rewrite project.yaml from the stored config."""
        self.service.regenerate_config_file_from_stored_config()
        self.service.save_modified_config_data()
        print(f"✅ Regenerated {self.service.root_file}")
        return 0

    def cmd_watch(self, args):
        """Apply changes whenever the config files change."""
        return asyncio.run(self._watch())

    async def _watch(self) -> int:
        service = self.service

        async def on_change(files: List[str]):
            service.reset_pass()
            if service.is_update_pending():
                service.apply_pending_changes()
                service.save_modified_config_data()
                logger.info(f"Applied changes from {', '.join(files)}")

        watcher = FileWatcher(
            config_dir=service.settings.config_dir,
            reload_callback=on_change,
            debounce_ms=service.settings.watch_debounce_ms,
            state_dir=service.settings.resolved_state_dir
        )
        watcher.start()
        print(f"👀 Watching {service.settings.config_dir} (Ctrl+C to stop)")

        try:
            while True:
                await asyncio.sleep(3600)
        finally:
            watcher.stop()

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Project config reconciler",
            prog="project-config"
        )
        parser.add_argument("--config-dir", help="Directory holding project.yaml (default: $PROJECT_CONFIG_DIR or ./config)")
        parser.add_argument("--state-dir", help="Directory for the stored config and caches")
        parser.add_argument("--strict-imports", action="store_true", help="Fail on imports outside the config directory")
        parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

        subparsers = parser.add_subparsers(dest="command", help="Command to execute")

        status_parser = subparsers.add_parser("status", help="Show pending change summary")
        status_parser.add_argument("--exit-code", action="store_true", help="Exit with 1 when changes are pending")

        diff_parser = subparsers.add_parser("diff", help="Show the full pending change set")
        diff_parser.add_argument("--json", action="store_true", help="Output as JSON")

        apply_parser = subparsers.add_parser("apply", help="Apply pending changes")
        apply_parser.add_argument("--if-modified", action="store_true", help="Skip when no config file changed")

        get_parser = subparsers.add_parser("get", help="Print a config value")
        get_parser.add_argument("path", help="Dot-delimited config path")
        get_parser.add_argument("--desired", action="store_true", help="Read from the config files")
        get_parser.add_argument("--json", action="store_true", help="Output as JSON")

        set_parser = subparsers.add_parser("set", help="Save a config value")
        set_parser.add_argument("path", help="Dot-delimited config path")
        set_parser.add_argument("value", help="Value, parsed as YAML")

        remove_parser = subparsers.add_parser("remove", help="Remove a config value")
        remove_parser.add_argument("path", help="Dot-delimited config path")

        subparsers.add_parser("regenerate", help="Rewrite project.yaml from the stored config")
        subparsers.add_parser("watch", help="Apply changes as config files change")

        return parser

    def run(self, argv: Optional[List[str]] = None):
        """Run CLI."""
        parser = self.build_parser()
        args = parser.parse_args(argv)

        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        if not args.command:
            parser.print_help()
            return 1

        # Route to command handler
        cmd_map = {
            "status": self.cmd_status,
            "diff": self.cmd_diff,
            "apply": self.cmd_apply,
            "get": self.cmd_get,
            "set": self.cmd_set,
            "remove": self.cmd_remove,
            "regenerate": self.cmd_regenerate,
            "watch": self.cmd_watch,
        }

        handler = cmd_map[args.command]

        try:
            self.service = self.build_service(args)
            return handler(args)
        except KeyboardInterrupt:
            print("\nInterrupted")
            return 130
        except ConfigError as e:
            print(f"❌ {e.message}")
            if e.suggestion:
                print(f"  → {e.suggestion}")
            return 1
        except Exception as e:
            print(f"❌ Error: {e}")
            return 1


def main():
    """Main entry point."""
    cli = ProjectConfigCLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
