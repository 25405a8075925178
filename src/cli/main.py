"""metalens CLI entry points.
This module exposes sync, search, template, capture, and truncate commands.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

import httpx

from core.config import MetalensConfig
from core.constants import CONTEXT_PREPARE_PATH, DEFAULT_SEARCH_LIMIT
from core.errors import MetalensError
from core.filter_file import load_filter_file
from core.logging_config import configure_logging
from core.types import EntityCategory, FilterSpec, MatchType, SearchPage
from query.search import configure_collation
from store.metadata_sdk import MetalensClient
from store.snapshot_payload import snapshot_summary
from templating.template_render import render_reference


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="metalens", description="metalens metadata CLI")
    parser.add_argument("--data-root", help="Override METALENS_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_sync_command(subparsers)
    _add_status_command(subparsers)
    _add_search_command(subparsers)
    _add_resolve_command(subparsers)
    _add_capture_command(subparsers)
    _add_truncate_command(subparsers)
    return parser


def main(
    argv: Sequence[str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Run the metalens CLI.

    Args:
        argv: Optional argument vector.
        transport: Optional httpx transport for the metadata API.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = _build_config(args.data_root)
        configure_logging(config.log_level)
        configure_collation()
        return asyncio.run(_run_command(config, args, transport))
    except MetalensError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    except httpx.HTTPError as error:
        print(f"error: metadata request failed: {error}", file=sys.stderr)
        return 1


def _build_config(data_root: str | None) -> MetalensConfig:
    """Build config with optional data-root override.

    Args:
        data_root: Optional override path.

    Returns:
        Configured runtime config.
    """
    config = MetalensConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    return config


async def _run_command(
    config: MetalensConfig,
    args: argparse.Namespace,
    transport: httpx.AsyncBaseTransport | None,
) -> int:
    async with MetalensClient(config, transport=transport) as client:
        if args.command == "sync":
            return await _run_sync_command(client, args)
        if args.command == "status":
            return await _run_status_command(client, args)
        if args.command == "search":
            return await _run_search_command(client, args)
        if args.command == "resolve":
            return await _run_resolve_command(client, args)
        if args.command == "capture":
            return await _run_capture_command(client, args)
        if args.command == "truncate":
            return await _run_truncate_command(client, args)
    raise MetalensError(f"Unsupported command: {args.command}")


async def _run_sync_command(client: MetalensClient, args: argparse.Namespace) -> int:
    """Handle sync command.

    Exit code is 0 whenever some snapshot, fresh or cached, is active.
    """
    outcome = await client.sync(args.origin)
    session = client.session(args.origin)
    _print_json(
        {
            "status": outcome.status.value,
            "persisted": outcome.persisted,
            "error": outcome.error,
            "banner": session.status_banner(),
            "snapshot": snapshot_summary(session.snapshot) if session.snapshot else None,
        }
    )
    return 0 if session.snapshot is not None else 1


async def _run_status_command(client: MetalensClient, args: argparse.Namespace) -> int:
    """Handle status command."""
    session = await client.load_cached(args.origin)
    _print_json(
        {
            "status": session.status.value,
            "banner": session.status_banner(),
            "snapshot": snapshot_summary(session.snapshot) if session.snapshot else None,
        }
    )
    return 0


async def _run_search_command(client: MetalensClient, args: argparse.Namespace) -> int:
    """Handle search command."""
    filters = _collect_filters(args)
    page = await client.search(
        args.origin,
        term=args.term,
        filters=filters,
        entity_type=args.type,
        limit=args.limit,
        offset=args.offset,
    )
    if page is None:
        print(
            f"error: no cached metadata for {args.origin}. Run 'sync' first.",
            file=sys.stderr,
        )
        return 1
    _print_json(_page_payload(page))
    return 0


async def _run_resolve_command(client: MetalensClient, args: argparse.Namespace) -> int:
    """Handle resolve command."""
    if args.captured:
        payload = await client.captured_context(args.origin)
        if payload is None:
            print(f"error: no captured context for {args.origin}.", file=sys.stderr)
            return 1
    else:
        payload = _read_json_file(args.payload)
    result = await client.rewrite(args.origin, payload)
    _print_json(
        {
            "payload": result.payload,
            "gaps": [render_reference(gap) for gap in result.gaps],
        }
    )
    return 0


async def _run_capture_command(client: MetalensClient, args: argparse.Namespace) -> int:
    """Handle capture command."""
    raw_body = _read_body_file(args.body)
    url = args.url or f"{args.origin.rstrip('/')}{CONTEXT_PREPARE_PATH}"
    context = await client.capture(args.origin, "PUT", url, raw_body)
    if context is None:
        print("error: request body carries no context.", file=sys.stderr)
        return 1
    _print_json({"context": context})
    return 0


async def _run_truncate_command(client: MetalensClient, args: argparse.Namespace) -> int:
    """Handle truncate command."""
    result = await client.truncate_set(args.origin, args.set_id)
    _print_json({"success": result.success, "message": result.message})
    return 0 if result.success else 1


def _collect_filters(args: argparse.Namespace) -> list[FilterSpec]:
    filters: list[FilterSpec] = []
    if args.filters_file:
        filters.extend(load_filter_file(args.filters_file))
    for path, match_type, value in args.filter or []:
        filters.append(
            FilterSpec(
                path=path,
                value=value,
                match_type=MatchType.parse(match_type),
                case_sensitive=args.case_sensitive,
            )
        )
    return filters


def _page_payload(page: SearchPage) -> dict[str, Any]:
    return {
        "total": page.total,
        "guidance": page.guidance,
        "hits": [
            {
                "category": hit.category.value,
                "id": hit.entity_id,
                "label": hit.label,
                "parentSet": hit.parent_set_name,
            }
            for hit in page.hits
        ],
    }


def _read_json_file(file_path: str) -> Any:
    json_file = Path(file_path).expanduser()
    try:
        return json.loads(json_file.read_text(encoding="utf-8"))
    except OSError as error:
        raise MetalensError(f"Failed to read payload file {json_file}: {error}.") from error
    except json.JSONDecodeError as error:
        raise MetalensError(
            f"Payload file {json_file} is not valid JSON: {error.msg}."
        ) from error


def _read_body_file(file_path: str) -> bytes:
    """Read a raw request body file.

    Args:
        file_path: Body file path.

    Returns:
        File contents as bytes.

    Raises:
        MetalensError: If the file cannot be read.
    """
    body_file = Path(file_path).expanduser()
    try:
        return body_file.read_bytes()
    except OSError as error:
        raise MetalensError(f"Failed to read body file {body_file}: {error}.") from error


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _add_sync_command(subparsers: Any) -> None:
    """Register sync subcommand."""
    parser = subparsers.add_parser("sync", help="Fetch and cache metadata for an origin")
    parser.add_argument("origin", help="Host origin, e.g. https://warehouse.example.com")


def _add_status_command(subparsers: Any) -> None:
    """Register status subcommand."""
    parser = subparsers.add_parser("status", help="Show the cached snapshot for an origin")
    parser.add_argument("origin", help="Host origin")


def _add_search_command(subparsers: Any) -> None:
    """Register search subcommand."""
    parser = subparsers.add_parser("search", help="Search cached metadata")
    parser.add_argument("origin", help="Host origin")
    parser.add_argument("--term", default="", help="Substring of name, description, or id")
    parser.add_argument(
        "--type",
        default=EntityCategory.ALL.value,
        choices=[member.value for member in EntityCategory],
        help="Entity category to search",
    )
    parser.add_argument(
        "--filter",
        nargs=3,
        action="append",
        metavar=("PATH", "MATCH_TYPE", "VALUE"),
        help="Nested path filter, e.g. --filter properties.indexed exact true",
    )
    parser.add_argument("--filters-file", help="YAML file with a 'filters' list")
    parser.add_argument(
        "--case-sensitive",
        action="store_true",
        help="Keep case for --filter text comparisons",
    )
    parser.add_argument("--limit", type=int, default=DEFAULT_SEARCH_LIMIT, help="Page size")
    parser.add_argument("--offset", type=int, default=0, help="Page offset")


def _add_resolve_command(subparsers: Any) -> None:
    """Register resolve subcommand."""
    parser = subparsers.add_parser("resolve", help="Rewrite ids in a payload as a template")
    parser.add_argument("origin", help="Host origin")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--payload", help="JSON payload file")
    source.add_argument(
        "--captured",
        action="store_true",
        help="Use the last captured context for the origin",
    )


def _add_capture_command(subparsers: Any) -> None:
    """Register capture subcommand."""
    parser = subparsers.add_parser("capture", help="Store context from a session-prepare body")
    parser.add_argument("origin", help="Host origin")
    parser.add_argument("--body", required=True, help="Raw request body file")
    parser.add_argument("--url", help="Intercepted request URL; defaults to the prepare path")


def _add_truncate_command(subparsers: Any) -> None:
    """Register truncate subcommand."""
    parser = subparsers.add_parser("truncate", help="Delete every record of a set")
    parser.add_argument("origin", help="Host origin")
    parser.add_argument("set_id", type=int, help="Set id")
