#!/usr/bin/env python3
"""Tail a developer tools console from the terminal.

Loads the current project, then prints every new message as it is merged
into the local cache, together with the window title whenever it changes.

Usage
-----
Start the developer tools server (``expo start``), then run::

    python scripts/tail_console.py

Options::

    --base-url URL      Server root (default: $DEVTOOLS_BASE_URL or http://localhost:19002)
    --duration SECONDS  Stop after SECONDS (default: run until Ctrl-C)
    --background        Leave new messages unread instead of marking them read
    --json              Print the loaded project as JSON and exit
    --verbose, -v       Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pydevsync import DevToolsClient, DevToolsConfig  # noqa: E402
from pydevsync.models.source import Source  # noqa: E402


class ConsolePrinter:
    """Print messages not seen before, per source."""

    def __init__(self) -> None:
        self._seen: dict[str, set[str]] = {}
        self._title = ""

    def __call__(self, client: DevToolsClient) -> None:
        title = client.window_title()
        if title != self._title:
            self._title = title
            print(f"== {title}")
        for source in client.view_selection().sources:
            self._print_new(source)

    def _print_new(self, source: Source) -> None:
        seen = self._seen.setdefault(source.id, set())
        for node in source.messages.nodes:
            if node.id in seen:
                continue
            seen.add(node.id)
            stamp = node.time.strftime("%H:%M:%S") if node.time is not None else "--:--:--"
            print(f"{stamp} [{source.name or source.kind}] {node.level:<5} {node.msg}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Tail the developer tools console.")
    parser.add_argument("--base-url", help="Developer tools server root")
    parser.add_argument("--duration", type=float, help="Stop after this many seconds")
    parser.add_argument("--background", action="store_true", help="Leave new messages unread")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Print the project as JSON and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {"base_url": args.base_url} if args.base_url else {}
    if args.json_mode:
        overrides["push_enabled"] = False
    config = DevToolsConfig.from_env(**overrides)

    printer = None if args.json_mode else ConsolePrinter()
    async with DevToolsClient(config, on_change=printer, foreground=not args.background) as client:
        await client.start()

        if args.json_mode:
            project = client.project()
            payload = project.model_dump(mode="json") if project is not None else None
            print(json.dumps(payload, indent=2, ensure_ascii=False))
            return

        stop = asyncio.Event()
        if args.duration is not None:
            asyncio.get_running_loop().call_later(args.duration, stop.set)
        await stop.wait()


if __name__ == "__main__":
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())
