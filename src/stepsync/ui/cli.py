from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, datetime
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from stepsync.app import check_offline_activity, open_session_store
from stepsync.config import configure_logging
from stepsync.domain.types import Decision, Identity

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile offline step activity")
    parser.add_argument(
        "--database-uri",
        type=str,
        help="SQLAlchemy database URI (defaults to DATABASE_URI or the data directory)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    login = subparsers.add_parser("login", help="Sign in as an identity")
    login.add_argument("identity", type=str, help="Opaque session/user handle")
    login.add_argument(
        "--baseline",
        type=str,
        help="ISO-8601 timestamp (UTC) to seed as the first sync cursor",
    )

    subparsers.add_parser("logout", help="Sign out the current identity")
    subparsers.add_parser("status", help="Show the signed-in identity and its cursor")

    check = subparsers.add_parser("check", help="Reconcile activity accrued since the last sync")
    decision = check.add_mutually_exclusive_group()
    decision.add_argument(
        "--accept",
        dest="decision",
        action="store_const",
        const=Decision.ACCEPT,
        help="Bank a surfaced result immediately",
    )
    decision.add_argument(
        "--discard",
        dest="decision",
        action="store_const",
        const=Decision.DISCARD,
        help="Discard a surfaced result immediately",
    )

    return parser.parse_args(list(argv))


def _parse_iso_datetime(value: str) -> datetime:
    try:
        normalized = value.strip()
        if normalized.endswith("Z"):
            normalized = normalized[:-1] + "+00:00"
        dt = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"Invalid ISO timestamp: {value}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _parse_identity(value: str) -> Identity:
    stripped = value.strip()
    if not stripped:
        raise ValueError("Identity must not be blank")
    return Identity(stripped)


def _run_command(args: argparse.Namespace) -> None:
    store = open_session_store(database_uri=args.database_uri)

    if args.command == "login":
        baseline = _parse_iso_datetime(args.baseline) if args.baseline else None
        profile = store.login(_parse_identity(args.identity), baseline=baseline)
        log.info("Current identity: %s (last sync %s)", profile.identity, profile.last_sync_time)
    elif args.command == "logout":
        identity = store.logout()
        if identity is None:
            log.info("Nobody is signed in")
    elif args.command == "status":
        identity = store.current_identity()
        profile = store.profile(identity) if identity is not None else None
        if profile is None:
            log.info("Nobody is signed in")
        else:
            log.info(
                "Signed in as %s: last sync %s, %s steps banked",
                profile.identity,
                profile.last_sync_time.isoformat() if profile.last_sync_time else "never",
                profile.steps_banked,
            )
    elif args.command == "check":
        run, pending = check_offline_activity(decision=args.decision, store=store)
        log.info("Reconciliation outcome: %s", run.outcome)
        if pending is not None:
            action = args.decision or "awaiting decision (rerun with --accept or --discard)"
            log.info(
                "%s steps between %s and %s: %s",
                pending.count,
                pending.window.start.isoformat(),
                pending.window.end.isoformat(),
                action,
            )
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        _run_command(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during reconciliation")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
