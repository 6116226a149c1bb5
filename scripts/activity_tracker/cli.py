#!/usr/bin/env python3
"""
Command-line interface for the activity tracker.

Usage:
    activity-tracker send --user-id USER --type click --category interaction [--component C] [--action A]
    activity-tracker show [--log-path PATH] [--user-id USER] [--json]
    activity-tracker config
"""

import argparse
import asyncio
import json
import sys
from collections import Counter
from pathlib import Path

from .config import TrackerConfig
from .context import PageState
from .schema import EventType
from .store import JSONLReader
from .tracker import create_tracker


def parse_metadata(pairs):
    """Parse key=value pairs; values are decoded as JSON when possible."""
    metadata = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        if not sep:
            raise ValueError(f"Metadata must be key=value, got {pair!r}")
        try:
            metadata[key] = json.loads(raw)
        except json.JSONDecodeError:
            metadata[key] = raw
    return metadata


async def send_event(args, config: TrackerConfig) -> int:
    tracker = create_tracker(
        page_state=PageState(path=args.path, title=args.title or ""),
        config=config
    )
    tracker.resolver.set_user({"id": args.user_id})
    tracker.track_event(
        args.type,
        args.category,
        component=args.component,
        action=args.action,
        metadata=parse_metadata(args.meta)
    )
    await tracker.close()
    return 0


def show_events(args, config: TrackerConfig) -> int:
    log_path = args.log_path or config.get('event_store.log_path')
    if not log_path:
        print("Error: no JSONL log path configured (use --log-path)", file=sys.stderr)
        return 1

    entries = JSONLReader.read_log(
        Path(log_path),
        filter_fn=(lambda e: e.get("user_id") == args.user_id) if args.user_id else None
    )

    if args.json:
        print(json.dumps(entries, indent=2, default=str))
        return 0

    print(f"{len(entries)} events in {log_path}")
    for event_type, count in Counter(e.get("event_type") for e in entries).most_common():
        print(f"  {event_type:<12} {count}")
    return 0


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="User activity telemetry tools"
    )
    parser.add_argument(
        "--config",
        type=str,
        metavar="PATH",
        help="Path to activity_tracker.json (default: ./activity_tracker.json)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    send = subparsers.add_parser("send", help="Record one event and flush it")
    send.add_argument("--user-id", required=True)
    send.add_argument("--type", required=True, choices=sorted(EventType.get_allowed_types()))
    send.add_argument("--category", required=True)
    send.add_argument("--component")
    send.add_argument("--action")
    send.add_argument("--path", default="/")
    send.add_argument("--title")
    send.add_argument("--meta", action="append", metavar="KEY=VALUE",
                      help="Metadata entry (repeatable)")

    show = subparsers.add_parser("show", help="Summarize events in a JSONL store")
    show.add_argument("--log-path", type=str, metavar="PATH")
    show.add_argument("--user-id")
    show.add_argument("--json", action="store_true", help="Output as JSON")

    subparsers.add_parser("config", help="Print effective configuration")

    args = parser.parse_args(argv)
    config = TrackerConfig(Path(args.config) if args.config else None)

    try:
        if args.command == "send":
            return asyncio.run(send_event(args, config))
        if args.command == "show":
            return show_events(args, config)

        settings = config.get_all()
        if settings.get("event_store", {}).get("api_key"):
            settings["event_store"]["api_key"] = "***"
        print(json.dumps(settings, indent=2))
        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nCancelled by user")
        sys.exit(1)
