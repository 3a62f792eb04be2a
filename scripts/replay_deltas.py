#!/usr/bin/env python3
"""Replay recorded deltas through the value combiner.

Loads a settings document, starts a combiner engine on an in-process
delta bus, publishes every delta from a JSON-lines file and prints the
deltas the engine produced.

Usage
-----
::

    python scripts/replay_deltas.py settings.json deltas.jsonl

Options::

    --json               Output published deltas as JSON lines
    --strict             Force the strict readiness policy for every rule
    --allow-non-numeric  Store non-numeric input values as-is
    --print-schema       Print the settings JSON schema and exit
    -v, --verbose        Enable debug logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pycombiner import (  # noqa: E402
    CombinerConfig,
    CombinerConfigError,
    CombinerEngine,
    DeltaBus,
    DeltaEmitter,
    ReadinessPolicy,
    settings_schema,
)
from pycombiner.config import load_settings_file  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Replay deltas through the value combiner")
    parser.add_argument("settings", nargs="?", type=Path, help="Settings JSON document")
    parser.add_argument("deltas", nargs="?", type=Path, help="JSON-lines file with one delta per line")
    parser.add_argument("--json", action="store_true", help="Output published deltas as JSON lines")
    parser.add_argument("--strict", action="store_true", help="Force the strict readiness policy")
    parser.add_argument("--allow-non-numeric", action="store_true", help="Store non-numeric values as-is")
    parser.add_argument("--print-schema", action="store_true", help="Print the settings JSON schema and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)
    if not args.print_schema and (args.settings is None or args.deltas is None):
        parser.error("settings and deltas are required unless --print-schema is given")
    return args


async def _read_deltas(path: Path) -> AsyncIterator[dict[str, Any]]:
    with path.open(encoding="utf-8") as handle:
        for lineno, line in enumerate(handle, start=1):
            text = line.strip()
            if not text or text.startswith("#"):
                continue
            try:
                delta = json.loads(text)
            except json.JSONDecodeError as exc:
                print(f"  ! line {lineno}: invalid JSON ({exc})", file=sys.stderr)
                continue
            yield delta


def _format_delta(delta: dict[str, Any]) -> str:
    lines: list[str] = []
    for update in delta.get("updates", []):
        lines.append(f"[{update.get('timestamp', '?')}] {update.get('source', {}).get('label', '?')}")
        for item in update.get("values", []):
            lines.append(f"  {item['path']} = {item['value']}")
    return "\n".join(lines)


async def _replay(args: argparse.Namespace) -> int:
    try:
        settings = load_settings_file(args.settings)
    except CombinerConfigError as exc:
        print(f"Invalid settings: {exc}", file=sys.stderr)
        return 2
    if args.strict:
        settings = settings.model_copy(update={"readiness": ReadinessPolicy.STRICT})

    config = CombinerConfig(settings=settings, numeric_only=not args.allow_non_numeric)
    bus = DeltaBus(self_context=config.context)
    emitter = DeltaEmitter(bus.handle_message, source_label=config.plugin_id, context=config.context)
    engine = CombinerEngine(config, source=bus, sink=emitter)

    with engine:
        if not engine.is_running:
            print(f"Engine not started: {engine.last_status}", file=sys.stderr)
            return 1
        count = await bus.feed(_read_deltas(args.deltas))
        last_status = engine.last_status

    for source_id, delta in bus.messages:
        if source_id != config.plugin_id:
            continue
        if args.json:
            print(json.dumps(delta))
        else:
            print(_format_delta(delta))

    published = sum(1 for source_id, _ in bus.messages if source_id == config.plugin_id)
    print(f"Replayed {count} deltas, published {published}; last status: {last_status}", file=sys.stderr)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if args.print_schema:
        print(json.dumps(settings_schema(), indent=2))
        return 0
    return asyncio.run(_replay(args))


if __name__ == "__main__":
    sys.exit(main())
