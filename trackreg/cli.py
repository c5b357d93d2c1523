#!/usr/bin/env python3
"""
trackreg CLI

Command-line interface for a persisted track registry:
  trackreg call    - Run one registry call
  trackreg state   - Show pause flag, admin, last id and sequence height
  trackreg journal - List (and optionally verify) journal entries
  trackreg serve   - Run the HTTP server

Usage:
  trackreg --store <dir> call <operation> --caller <id> [-a name=value ...] [--args <json>]
  trackreg --store <dir> state
  trackreg --store <dir> journal [--verify <public.pem>]
  trackreg --store <dir> serve [--host <host>] [--port <port>]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import RegistryConfig
from .engine import OPERATIONS, Call, RegistryEngine
from .errors import ConfigError, StateError
from .journal import load_key, verify_entry


def parse_arg(arg_str: str) -> Tuple[str, Any]:
    """
    Parse argument specification: name=value

    The value is read as JSON when it parses (numbers, booleans, lists),
    otherwise kept as a plain string.
    """
    if "=" not in arg_str:
        raise ValueError(f"Invalid argument format: {arg_str}. Expected name=value")

    name, raw = arg_str.split("=", 1)
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = raw
    return name.replace("-", "_"), value


def parse_call_args(arg_list: Optional[List[str]], args_json: Optional[str]) -> Dict[str, Any]:
    """Merge --args JSON with individual -a name=value pairs (pairs win)."""
    call_args: Dict[str, Any] = {}
    if args_json:
        loaded = json.loads(args_json)
        if not isinstance(loaded, dict):
            raise ValueError("--args must be a JSON object")
        call_args.update(loaded)
    for arg_str in arg_list or []:
        name, value = parse_arg(arg_str)
        call_args[name] = value
    return call_args


def open_engine(args) -> RegistryEngine:
    """Open the registry store named on the command line."""
    config = RegistryConfig.from_file(args.config) if args.config else None
    signing_key = load_key(args.key) if args.key else None
    return RegistryEngine.from_store(
        Path(args.store),
        config=config,
        signing_key=signing_key,
    )


def cmd_call(args) -> int:
    """Run one call."""
    try:
        call_args = parse_call_args(args.arg, args.args)
    except (ValueError, json.JSONDecodeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    engine = open_engine(args)
    try:
        result = engine.execute(Call(operation=args.operation, caller=args.caller, args=call_args))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


def cmd_state(args) -> int:
    engine = open_engine(args)
    print(json.dumps(engine.state(), indent=2))
    return 0


def cmd_journal(args) -> int:
    """List journal entries."""
    engine = open_engine(args)
    public_key = load_key(args.verify) if args.verify else None

    failures = 0
    for entry in engine.journal.list():
        line = f"{entry.height:>6}  {entry.operation:<20} {entry.caller}"
        if entry.asset_id is not None:
            line += f"  asset={entry.asset_id}"
        if public_key is not None:
            valid = verify_entry(entry, public_key)
            line += "  [VALID]" if valid else "  [INVALID]"
            if not valid:
                failures += 1
        print(line)

    print(f"\n{len(engine.journal)} entries")
    if public_key is not None and failures:
        print(f"{failures} entries failed verification")
        return 1
    return 0


def cmd_serve(args) -> int:
    from .server import RegistryServer

    engine = open_engine(args)
    server = RegistryServer(engine, host=args.host, port=args.port)
    print(f"Registry server running on http://{args.host}:{args.port}")
    server.start()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trackreg",
        description="Track registry - ownership, licensing and revenue shares for creative works",
    )
    parser.add_argument("--store", default="./trackreg_store", help="Registry store directory")
    parser.add_argument("--config", help="Registry config YAML file")
    parser.add_argument("--key", help="PEM private key for signing journal entries")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # call command
    call_parser = subparsers.add_parser("call", help="Run one registry call")
    call_parser.add_argument("operation", choices=sorted(OPERATIONS), metavar="operation",
                             help="Operation name (e.g. mint, grant-license)")
    call_parser.add_argument("--caller", required=True, help="Invoking identity")
    call_parser.add_argument("-a", "--arg", action="append", help="Argument: name=value")
    call_parser.add_argument("--args", help="Arguments as a JSON object")

    # state command
    subparsers.add_parser("state", help="Show control state")

    # journal command
    journal_parser = subparsers.add_parser("journal", help="List journal entries")
    journal_parser.add_argument("--verify", help="PEM public key to verify signatures with")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to bind to")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    commands = {
        "call": cmd_call,
        "state": cmd_state,
        "journal": cmd_journal,
        "serve": cmd_serve,
    }
    if args.command not in commands:
        parser.print_help()
        return 1

    try:
        return commands[args.command](args)
    except (ConfigError, StateError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
