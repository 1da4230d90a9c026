"""
CLI for the AFDBRO bulletin watcher.

Usage:
    # Check for a new bulletin and notify subscribers (run by the scheduler)
    python main.py check

    # Same, printing the full JSON result including the normalized text
    python main.py check --include-text --json

    # Show the last observed bulletin state
    python main.py status

    # Manage subscribers
    python main.py subscribe someone@example.com
    python main.py unsubscribe <token>

    # Send the latest bulletin now, regardless of change
    python main.py send-test [--to someone@example.com]
"""

import argparse
import json
import sys

from models.check import CheckResult
from notifications.subscriber_store import SubscriberStore
from notifications.subscriptions import subscribe, unsubscribe
from processing.bulletin_check import get_status, perform_check, send_latest_bulletin
from shared.config import Settings, load_settings
from shared.kv_store import SupabaseKVStore
from shared.utils import print_check_summary


def _open_store(settings: Settings) -> SubscriberStore:
    return SubscriberStore(SupabaseKVStore.from_settings(settings))


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, default=str))


def run_check(settings: Settings, include_text: bool, as_json: bool) -> int:
    print("Checking AFDBRO bulletin...")
    try:
        store = _open_store(settings)
    except ValueError as e:
        print(f"✗ Configuration error: {e}")
        result = CheckResult(changed=False, error=str(e), source_url=settings.source_url)
    else:
        result = perform_check(settings, store, include_canonical_text=include_text)
    if as_json:
        _print_json(result.to_dict())
    else:
        print_check_summary(result)
    return 1 if result.error else 0


def run_status(settings: Settings) -> int:
    _print_json(get_status(_open_store(settings)))
    return 0


def run_subscribe(settings: Settings, email: str) -> int:
    result = subscribe(_open_store(settings), email)
    print(result["message"])
    return 0 if result["ok"] else 1


def run_unsubscribe(settings: Settings, token: str) -> int:
    result = unsubscribe(_open_store(settings), settings, token)
    print(result["message"])
    return 0 if result["ok"] else 1


def run_send_test(settings: Settings, to: str | None) -> int:
    result = send_latest_bulletin(settings, to)
    _print_json(result)
    return 0 if result["ok"] else 1


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Watch the AFDBRO bulletin and email subscribers when it changes"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check", help="Fetch the bulletin and notify subscribers who are behind"
    )
    check_parser.add_argument(
        "--include-text",
        action="store_true",
        help="Include the normalized bulletin text in the result",
    )
    check_parser.add_argument(
        "--json", action="store_true", help="Print the result as JSON"
    )

    subparsers.add_parser("status", help="Show the last observed bulletin state")

    subscribe_parser = subparsers.add_parser("subscribe", help="Subscribe an address")
    subscribe_parser.add_argument("email", help="Email address to subscribe")

    unsubscribe_parser = subparsers.add_parser(
        "unsubscribe", help="Unsubscribe using a token from an email link"
    )
    unsubscribe_parser.add_argument("token", help="Unsubscribe token")

    send_parser = subparsers.add_parser(
        "send-test", help="Send the latest bulletin now, regardless of change"
    )
    send_parser.add_argument(
        "--to", type=str, help="Recipient (defaults to RECIPIENT)"
    )

    args = parser.parse_args(argv)
    settings = load_settings()

    if args.command == "check":
        return run_check(settings, args.include_text, args.json)
    if args.command == "send-test":
        return run_send_test(settings, args.to)

    try:
        if args.command == "status":
            return run_status(settings)
        if args.command == "subscribe":
            return run_subscribe(settings, args.email)
        return run_unsubscribe(settings, args.token)
    except ValueError as e:
        # Missing storage credentials
        print(f"✗ Configuration error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
