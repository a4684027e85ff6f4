# ruff: noqa: T201

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from snapsync.app import build_api, close_store, open_store
from snapsync.config import ConfigurationError, configure_logging, get_service_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from snapsync.api import ApiResponse

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INVALID = 2


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile stored collections with snapshots")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser(
        "reconcile",
        help="Replace a collection with the records of a JSON snapshot",
    )
    _add_scope_arguments(reconcile)
    reconcile.add_argument(
        "--file",
        type=str,
        required=True,
        help="JSON file holding a list of records or a request document ('-' for stdin)",
    )
    reconcile.add_argument(
        "--retain-key",
        dest="retain_keys",
        action="append",
        help="Key that must survive the delete phase (repeatable; overrides the file)",
    )
    reconcile.add_argument(
        "--key-field",
        type=str,
        help="Record field holding the key (defaults to config)",
    )

    query = subparsers.add_parser("query", help="Read records from a collection")
    _add_scope_arguments(query)
    query.add_argument("--q", type=str, help="Case-insensitive substring filter")
    query.add_argument(
        "--field",
        dest="fields",
        action="append",
        help="Content field the filter applies to (repeatable, at most two)",
    )
    query.add_argument("--limit", type=int, help="Maximum number of records to return")

    subparsers.add_parser("health", help="Check that storage is reachable")

    return parser.parse_args(list(argv))


def _add_scope_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--dataset", type=str, required=True, help="Dataset name")
    parser.add_argument("--collection", type=str, required=True, help="Collection name")


def _load_document(path: str) -> object:
    try:
        if path == "-":
            return json.load(sys.stdin)
        with Path(path).open(encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Cannot read snapshot from {path}: {exc}") from exc


def _reconcile_body(args: argparse.Namespace) -> dict[str, object]:
    document = _load_document(args.file)
    body: dict[str, object] = (
        dict(document) if isinstance(document, dict) else {"records": document}
    )
    body["dataset"] = args.dataset
    body["collection"] = args.collection
    if args.retain_keys is not None:
        body["retain_keys"] = args.retain_keys
    if args.key_field is not None:
        body["key_field"] = args.key_field
    return body


def _query_params(args: argparse.Namespace) -> dict[str, object]:
    params: dict[str, object] = {"dataset": args.dataset, "collection": args.collection}
    if args.q is not None:
        params["q"] = args.q
    if args.fields:
        params["fields"] = args.fields
    if args.limit is not None:
        params["limit"] = args.limit
    return params


def _exit_code(response: ApiResponse) -> int:
    if response.ok:
        return EXIT_OK
    return EXIT_INVALID if response.status < 500 else EXIT_FAILURE


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        body: dict[str, object] | None = None
        if parsed_args.command == "reconcile":
            body = _reconcile_body(parsed_args)
        elif parsed_args.command == "query":
            body = _query_params(parsed_args)
        service = get_service_config()
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(EXIT_INVALID)

    try:
        store = open_store()
    except Exception:
        log.exception("Could not open snapshot store")
        sys.exit(EXIT_FAILURE)

    try:
        api = build_api(store=store, service=service)
        if parsed_args.command == "reconcile":
            response = api.reconcile(body, api_key=service.api_key)
        elif parsed_args.command == "query":
            response = api.query(body, api_key=service.api_key)
        else:
            response = api.health()
    finally:
        close_store(store)

    print(json.dumps(response.body, indent=2, default=str))
    sys.exit(_exit_code(response))


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console-script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
