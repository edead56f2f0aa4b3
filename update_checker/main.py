"""Entry point for App Update Checker."""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Optional

from .checkers import create_methods
from .constants import DEFAULT_METHOD_ORDER, __version__
from .logging_config import get_logger, resolve_log_level, setup_logging
from .metadata import AppMetadataReader
from .observers import ConsoleProgress, ConsoleReporter
from .orchestrator import UpdateOrchestrator
from .utils import resolve_applications_dir

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="app-update-checker",
        description="Check installed applications for updates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--verbose", "-V",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Log file path",
    )
    parser.add_argument(
        "--applications-dir", "-d",
        type=Path,
        help="Directory of installed applications (default: platform location)",
    )
    parser.add_argument(
        "--methods",
        default=",".join(DEFAULT_METHOD_ORDER),
        help="Comma separated update methods, in priority order "
             f"(default: {','.join(DEFAULT_METHOD_ORDER)})",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    check_parser = subparsers.add_parser("check", help="Check for updates once (default)")
    check_parser.add_argument("--json", action="store_true", help="Output as JSON")
    check_parser.set_defaults(func=run_check)

    watch_parser = subparsers.add_parser(
        "watch", help="Check for updates, then check again whenever apps change"
    )
    watch_parser.set_defaults(func=run_watch)

    list_parser = subparsers.add_parser("list", help="List installed apps and their versions")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.set_defaults(func=run_list)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = resolve_log_level(args.verbose)
    setup_logging(level=log_level, log_file=args.log_file)

    func = getattr(args, "func", run_check)
    return func(args)


def _create_orchestrator(args, progress, reporter) -> UpdateOrchestrator:
    names = [name.strip() for name in args.methods.split(",") if name.strip()]
    return UpdateOrchestrator(
        methods=create_methods(names),
        progress_observer=progress,
        app_update_delegate=reporter,
        applications_dir=args.applications_dir,
    )


def run_check(args) -> int:
    """Run a single check pass."""
    as_json = getattr(args, "json", False)
    progress = ConsoleProgress(write=_discard if as_json else print)
    reporter = ConsoleReporter(write=None if as_json else print)

    try:
        orchestrator = _create_orchestrator(args, progress, reporter)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    async def check_once():
        try:
            return await orchestrator.run()
        finally:
            orchestrator.close()

    result = asyncio.run(check_once())

    if result is None:
        print("Error: applications directory not found or not readable", file=sys.stderr)
        return 1

    updates = reporter.updates_available

    if as_json:
        output = {
            "directory": str(result.directory),
            "total_apps": result.total,
            "checked": [info.to_dict() for info in reporter.results],
            "unresolved": [str(path) for path in result.unresolved],
            "updates_count": len(updates),
        }
        print(json.dumps(output, indent=2))
        return 0

    print(f"\n{'='*50}")
    if updates:
        print(f"\n{len(updates)} updates available:\n")
        for info in updates:
            print(f"  * {info.app_name}: {info.installed_version} -> {info.latest_version}")
            if info.release_url:
                print(f"    {info.release_url}")
    else:
        print("\nAll checked apps are up to date!")

    if result.unresolved:
        print(f"\n{len(result.unresolved)} apps could not be checked.")
    return 0


def run_watch(args) -> int:
    """Check once, then keep checking whenever the applications directory changes."""
    progress = ConsoleProgress()
    reporter = ConsoleReporter()

    try:
        orchestrator = _create_orchestrator(args, progress, reporter)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    async def watch_forever():
        try:
            await orchestrator.run()
            print("Watching for changes, press Ctrl-C to stop.")
            while True:
                await asyncio.sleep(3600)
        finally:
            orchestrator.close()
            await orchestrator.wait_for_rescans()

    try:
        asyncio.run(watch_forever())
    except KeyboardInterrupt:
        logger.debug("Watch interrupted")
    return 0


def run_list(args) -> int:
    """List installed apps without checking for updates."""
    directory = resolve_applications_dir(args.applications_dir)
    if directory is None:
        print("Error: applications directory not found", file=sys.stderr)
        return 1

    try:
        entries = sorted(os.listdir(directory))
    except OSError as e:
        print(f"Error: could not list {directory}: {e}", file=sys.stderr)
        return 1

    reader = AppMetadataReader()
    apps = [reader.read_app(directory / entry) for entry in entries]

    if getattr(args, "json", False):
        output = {
            "apps": [app.to_dict() for app in apps],
            "count": len(apps),
        }
        print(json.dumps(output, indent=2))
        return 0

    print(f"\nInstalled applications in {directory} ({len(apps)}):\n")
    print(f"{'Name':<40} {'Version':<20} {'Build':<15}")
    print("-" * 75)

    for app in apps:
        version = app.version or "unknown"
        build = app.build_number or "unknown"
        print(f"{app.name[:38]:<40} {version[:18]:<20} {build[:13]:<15}")

    print()
    return 0


def _discard(message: str) -> None:
    pass


if __name__ == "__main__":
    sys.exit(main())
