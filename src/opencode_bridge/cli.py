"""Command-line access to a running opencode server.

Usage:
    opencode-bridge status
    opencode-bridge port [--launch]
    opencode-bridge prompt "explain this" [--clear] [--submit]
    opencode-bridge command session.new
    opencode-bridge events [--type file.edited ...]
    opencode-bridge stop
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Callable, List, Optional, Sequence

import orjson

from .bridge import OpencodeBridge
from .config import BridgeConfig, ConfigurationError
from .errors import BridgeError
from .events import Event
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opencode-bridge",
        description="Discover the opencode server for this directory and talk to it",
    )
    parser.add_argument("--port", type=int, help="Fixed server port (skips discovery)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="action", required=True)

    sub.add_parser("status", help="Show the server port and connection state")

    port_parser = sub.add_parser("port", help="Print the resolved server port")
    port_parser.add_argument("--launch", action="store_true", help="Start opencode when none is found")

    prompt_parser = sub.add_parser("prompt", help="Append text to the opencode prompt")
    prompt_parser.add_argument("text")
    prompt_parser.add_argument("--clear", action="store_true", help="Clear the prompt first")
    prompt_parser.add_argument("--submit", action="store_true", help="Submit the prompt afterwards")

    command_parser = sub.add_parser("command", help="Execute an opencode command")
    command_parser.add_argument("name")

    events_parser = sub.add_parser("events", help="Stream events as JSON lines until interrupted")
    events_parser.add_argument(
        "--type",
        dest="types",
        action="append",
        default=[],
        help="Only print events of this type (repeatable)",
    )

    sub.add_parser("stop", help="Ask the server for this directory to exit")
    return parser


def _write_event(event: Event) -> None:
    sys.stdout.write(orjson.dumps(event.to_dict()).decode() + "\n")
    sys.stdout.flush()


async def _stream_events(bridge: OpencodeBridge, types: Sequence[str], stop: asyncio.Event) -> int:
    if types:
        for event_type in types:
            bridge.events.subscribe(event_type, _write_event)
    else:
        bridge.events.subscribe_all(_write_event)

    if not await bridge.ensure_subscribed(notify_on_error=True):
        return EXIT_FAILURE
    await stop.wait()
    return EXIT_OK


async def run(args: argparse.Namespace, bridge_factory: Callable[[BridgeConfig], OpencodeBridge] = OpencodeBridge) -> int:
    config = BridgeConfig(port=args.port) if args.port is not None else BridgeConfig()
    async with bridge_factory(config) as bridge:
        if args.action == "status":
            try:
                port = await bridge.resolve_port(allow_launch=False)
            except BridgeError as exc:
                print(f"Server: not found ({exc.reason})")
                return EXIT_FAILURE
            print(f"Server: port {port}")
            for line in bridge.status_lines():
                print(line)
            return EXIT_OK

        if args.action == "port":
            try:
                port = await bridge.resolve_port(allow_launch=args.launch)
            except BridgeError as exc:
                print(exc.reason, file=sys.stderr)
                return EXIT_FAILURE
            print(port)
            return EXIT_OK

        if args.action == "prompt":
            ok = await bridge.prompt(args.text, clear=args.clear, submit=args.submit)
            return EXIT_OK if ok else EXIT_FAILURE

        if args.action == "command":
            return EXIT_OK if await bridge.command(args.name) else EXIT_FAILURE

        if args.action == "events":
            return await _stream_events(bridge, args.types, asyncio.Event())

        if args.action == "stop":
            try:
                port = await bridge.resolve_port(allow_launch=False)
            except BridgeError as exc:
                print(exc.reason, file=sys.stderr)
                return EXIT_FAILURE
            return EXIT_OK if await bridge.request_shutdown(port) else EXIT_FAILURE

    raise ValueError(f"Unknown action: {args.action}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, user_friendly=not args.verbose)
    try:
        return asyncio.run(run(args))
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
