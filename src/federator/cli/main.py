"""
Federator CLI.

Commands:
    federator run                 Run one relay cycle, exit non-zero on failure
    federator watch               Run cycles every poll_interval seconds until one fails
    federator status              Show checkpoints, identity and journal health

Configuration comes from FEDERATOR_* environment variables, optionally
layered with a JSON file passed through --config.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from federator.checkpoint.store import FileCheckpointStore
from federator.core.runtime import build_federator
from federator.core.settings import FederatorSettings, load_settings
from federator.journal.writer import CycleJournal
from federator.protocol.errors import FederatorError
from federator.security.identity import derive_identity

logger = logging.getLogger("federator.cli")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT, force=True)


def _settings_from_args(args: argparse.Namespace) -> FederatorSettings:
    return load_settings(
        getattr(args, "config", None),
        storage_path=getattr(args, "storage_path", None),
        log_level=getattr(args, "log_level", None),
    )


def cmd_run(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    configure_logging(settings.log_level)

    try:
        federator = build_federator(settings)
        report = federator.run_cycle()
    except FederatorError as e:
        # Cycle failures are already logged with traceback by the orchestrator
        logger.error(f"Federator run failed: {e}")
        return 1

    if getattr(args, "output", "table") == "json":
        print(json.dumps(report.to_dict(), indent=2))
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    configure_logging(settings.log_level)
    interval = args.interval if args.interval is not None else settings.poll_interval

    try:
        federator = build_federator(settings)
        completed = federator.watch(interval, max_cycles=args.max_cycles)
    except FederatorError as e:
        logger.error(f"Federator stopped: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted; stopping between cycles")
        return 0

    logger.info(f"Completed {completed} cycles")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    configure_logging(settings.log_level)

    try:
        checkpoints = FileCheckpointStore(str(settings.checkpoint_dir)).snapshot()
    except FederatorError as e:
        logger.error(f"Cannot read checkpoints: {e}")
        return 1

    status: Dict[str, Any] = {
        "storage_path": settings.storage_path,
        "checkpoint_policy": settings.checkpoint_policy.value,
        "checkpoints": checkpoints,
        "address": None,
        "journal": None,
    }

    key = settings.private_key.get_secret_value()
    if key:
        try:
            status["address"] = derive_identity(key).address
        except FederatorError as e:
            status["address"] = f"INVALID KEY: {e}"

    if settings.journal_dir.exists():
        journal = CycleJournal(str(settings.journal_dir), sync=False)
        ok, reason = journal.verify_integrity()
        status["journal"] = {
            "entries": journal.entry_count,
            "integrity": "OK" if ok else f"CORRUPT: {reason}",
            "in_doubt": journal.in_doubt(),
        }

    _print_status(status, getattr(args, "output", "table"))
    return 0


def _print_status(status: Dict[str, Any], fmt: str) -> None:
    if fmt == "json":
        print(json.dumps(status, indent=2))
        return

    print("Federator status")
    print("=" * 40)
    print(f"Storage path:       {status['storage_path']}")
    print(f"Checkpoint policy:  {status['checkpoint_policy']}")
    print(f"Address:            {status['address'] or '-'}")
    print()
    print("Checkpoints:")
    for name, value in status["checkpoints"].items():
        print(f"  {name:<18}{'-' if value is None else value}")

    journal = status["journal"]
    if journal is None:
        print("\nJournal:            not found")
        return
    print()
    print(f"Journal entries:    {journal['entries']}")
    print(f"Journal integrity:  {journal['integrity']}")
    in_doubt = journal["in_doubt"]
    print(f"In-doubt broadcasts: {len(in_doubt)}")
    for item in in_doubt:
        print(f"  {item.get('started_at', '')[:19]}  {item.get('kind')}  {item.get('broadcast_id')}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="federator", description="Cross-chain relay federator")
    parser.add_argument("--config", help="JSON config file (overrides environment)")
    parser.add_argument("--storage-path", dest="storage_path", help="Checkpoint and journal directory")
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING or ERROR")

    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Run one relay cycle")
    run_p.add_argument("--output", choices=["table", "json"], default="table")
    run_p.set_defaults(func=cmd_run)

    watch_p = sub.add_parser("watch", help="Run relay cycles until one fails")
    watch_p.add_argument("--interval", type=float, default=None, help="Seconds between cycles")
    watch_p.add_argument("--max-cycles", dest="max_cycles", type=int, default=None)
    watch_p.set_defaults(func=cmd_watch)

    status_p = sub.add_parser("status", help="Show checkpoints and journal health")
    status_p.add_argument("--output", choices=["table", "json"], default="table")
    status_p.set_defaults(func=cmd_status)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except FederatorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
