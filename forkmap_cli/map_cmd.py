# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 Forkmap Contributors
"""
Mapping CLI Commands

Commands:
- parse: Normalize a saved model response and print the result
- points: Print the forcing points of a saved model response
- traverse: Apply gate answers / conflict choices and print the state
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

from forkmap_core.engine import MappingEngine, MappingRound
from forkmap_core.errors import MappingRejected

_YES = ("y", "yes", "true", "1", "on")
_NO = ("n", "no", "false", "0", "off")


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _dump(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _map_file(path: str, engine: MappingEngine | None = None) -> MappingRound | None:
    try:
        text = _read_text(path)
    except OSError as e:
        print(f"✗ Cannot read {path}: {e}", file=sys.stderr)
        return None
    return (engine or MappingEngine()).map_text(text)


def _report_errors(mapping_round: MappingRound) -> None:
    print("✗ Mapping failed:", file=sys.stderr)
    for err in mapping_round.result.errors:
        print(f"  - {err.field}: {err.issue}", file=sys.stderr)


def cmd_parse(args: argparse.Namespace) -> int:
    """Normalize a model response."""
    mapping_round = _map_file(args.file)
    if mapping_round is None:
        return 1
    _dump(mapping_round.result.to_dict())
    return 0 if mapping_round.success else 1


def cmd_points(args: argparse.Namespace) -> int:
    """List forcing points of a model response."""
    mapping_round = _map_file(args.file)
    if mapping_round is None:
        return 1
    if not mapping_round.success:
        _report_errors(mapping_round)
        return 1
    _dump([fp.to_dict() for fp in mapping_round.forcing_points])
    return 0


class _DecisionAction(argparse.Action):
    """Collects --answer / --choose into one ordered list."""

    def __call__(self, parser, namespace, values, option_string=None):
        fp_id, sep, value = str(values).partition("=")
        if not sep or not fp_id.strip() or not value.strip():
            parser.error(f"{option_string} expects ID=VALUE, got {values!r}")
        kind = "answer" if option_string == "--answer" else "choose"
        if kind == "answer" and value.strip().lower() not in _YES + _NO:
            parser.error(f"--answer value must be yes or no, got {value!r}")
        decisions = list(getattr(namespace, self.dest, None) or [])
        decisions.append((kind, fp_id.strip(), value.strip()))
        setattr(namespace, self.dest, decisions)


def cmd_traverse(args: argparse.Namespace) -> int:
    """Apply decisions to a traversal and print the resulting state."""
    engine = MappingEngine()
    mapping_round = _map_file(args.file, engine)
    if mapping_round is None:
        return 1

    try:
        if args.state and Path(args.state).exists():
            session = engine.restore_traversal(mapping_round, Path(args.state).read_text(encoding="utf-8"))
        else:
            session = engine.start_traversal(mapping_round)
    except MappingRejected:
        _report_errors(mapping_round)
        return 1

    for kind, fp_id, value in args.decisions or []:
        if kind == "answer":
            session.resolve_gate(fp_id, satisfied=value.lower() in _YES)
        else:
            session.resolve_forcing_point(fp_id, value)

    state = session.to_dict()
    if args.output_state:
        Path(args.output_state).write_text(json.dumps(state, ensure_ascii=False, indent=2), encoding="utf-8")
        print(f"State written to {args.output_state}", file=sys.stderr)

    _dump(
        {
            "state": state,
            "liveForcingPoints": [fp.id for fp in session.live_forcing_points()],
            "complete": session.is_complete(),
            "activeClaims": [c.id for c in session.active_claims()],
            "pathSummary": session.path_summary(),
        }
    )
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="forkmap",
        description="Claim graph mapping and traversal commands",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # parse command
    parse_parser = subparsers.add_parser(
        "parse",
        help="Normalize a model response and print the result JSON",
    )
    parse_parser.add_argument(
        "file",
        help="Path to the model response text ('-' for stdin)",
    )
    parse_parser.set_defaults(func=cmd_parse)

    # points command
    points_parser = subparsers.add_parser(
        "points",
        help="Print the forcing points of a model response",
    )
    points_parser.add_argument(
        "file",
        help="Path to the model response text ('-' for stdin)",
    )
    points_parser.set_defaults(func=cmd_points)

    # traverse command
    traverse_parser = subparsers.add_parser(
        "traverse",
        help="Apply decisions and print the traversal state",
    )
    traverse_parser.add_argument(
        "file",
        help="Path to the model response text ('-' for stdin)",
    )
    traverse_parser.add_argument(
        "--state",
        help="Persisted traversal state to continue from (ignored if it belongs to another graph)",
    )
    traverse_parser.add_argument(
        "--answer",
        dest="decisions",
        action=_DecisionAction,
        metavar="ID=yes|no",
        help="Answer a gate (repeatable)",
    )
    traverse_parser.add_argument(
        "--choose",
        dest="decisions",
        action=_DecisionAction,
        metavar="ID=CLAIM",
        help="Pick a conflict option (repeatable)",
    )
    traverse_parser.add_argument(
        "--output-state",
        help="Write the resulting traversal state JSON to this path",
    )
    traverse_parser.set_defaults(func=cmd_traverse, decisions=[])

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the forkmap CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        exit_code = args.func(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
