"""Command line interface for replaying captured provider streams."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from .config import StreamConfig
from .core.errors import NormalizerError
from .core.stream import NormalizedEventStream, replay_stream
from .io.jsonl import read_events, read_fragments, write_events
from .normalizers import PROVIDERS


def _add_verbose_flag(parser: argparse.ArgumentParser) -> None:
    # SUPPRESS keeps a subcommand from resetting a flag given before it.
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Enable debug logging"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Normalize AI agent provider streams into canonical chat events"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    normalize_parser = subparsers.add_parser(
        "normalize", help="replay a captured provider stream through a normalizer"
    )
    normalize_parser.add_argument(
        "provider",
        help=f"Provider that produced the stream ({', '.join(sorted(PROVIDERS))})",
    )
    normalize_parser.add_argument("input", type=Path, help="JSONL file captured from the provider")
    normalize_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Write canonical events to this path instead of stdout",
    )
    normalize_parser.add_argument("--session-id", help="Session identifier copied onto events")
    normalize_parser.add_argument("--turn-id", help="Turn identifier copied onto events")
    normalize_parser.add_argument("--response-id", help="Response identifier copied onto events")
    _add_verbose_flag(normalize_parser)

    validate_parser = subparsers.add_parser("validate", help="validate a canonical event JSONL file")
    validate_parser.add_argument("input", type=Path, help="Canonical event JSONL file")
    _add_verbose_flag(validate_parser)

    return parser


def _handle_normalize(args: argparse.Namespace) -> int:
    try:
        config = StreamConfig.from_values(
            args.provider,
            session_id=args.session_id,
            turn_id=args.turn_id,
            response_id=args.response_id,
        )
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    stream = NormalizedEventStream(
        read_fragments(args.input, config.provider),
        config.create_normalizer(),
        config.context(),
    )
    try:
        events = asyncio.run(replay_stream(stream))
    except NormalizerError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with args.output.open("w", encoding="utf-8") as handle:
            write_events(events, handle)
    else:
        write_events(events, sys.stdout)
    return 0


def _handle_validate(args: argparse.Namespace) -> int:
    try:
        events = read_events(args.input)
    except (ValidationError, json.JSONDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    print(f"{len(events)} valid events")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    if args.command == "normalize":
        return _handle_normalize(args)
    if args.command == "validate":
        return _handle_validate(args)
    parser.error("no command provided")
    return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
