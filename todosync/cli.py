#!/usr/bin/env python3
"""
TODOSYNC - CLI Interface
========================
Command-line client for a remote todo list.

Usage:
    todosync list
    todosync list --filter pending
    todosync add "Buy milk"
    todosync complete 3
    todosync delete 3
    todosync complete-all
    todosync delete-all
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from .config import ClientConfig
from .errors import ValidationError
from .manager import TodoManager
from .schema import FILTER_TABS, BulkResult, MutationResult
from .service import HttpTodoService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="todosync",
        description="todosync - single-list todo client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  todosync list                      Show every todo
  todosync list --filter completed   Show completed todos only
  todosync add "Write report"        Create a todo
  todosync complete 3                Mark todo 3 completed
  todosync delete 3                  Delete todo 3
  todosync complete-all              Complete every pending todo
  todosync delete-all                Delete every todo
        """
    )
    parser.add_argument("--url", help="tRPC endpoint (default: $TODOSYNC_URL)")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds")
    parser.add_argument("--log-level", help="Logging level (default: $TODOSYNC_LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")
    filter_choices = [f.value for f in FILTER_TABS]

    list_parser = subparsers.add_parser("list", help="Show todos")
    list_parser.add_argument("-f", "--filter", choices=filter_choices, default="all", help="Status tab")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    add_parser = subparsers.add_parser("add", help="Create a todo")
    add_parser.add_argument("body", help="Todo text")

    complete_parser = subparsers.add_parser("complete", help="Mark a todo completed")
    complete_parser.add_argument("todo_id", type=int, help="Todo ID")

    delete_parser = subparsers.add_parser("delete", help="Delete a todo")
    delete_parser.add_argument("todo_id", type=int, help="Todo ID")

    for name, help_text in (
        ("complete-all", "Complete every pending todo"),
        ("delete-all", "Delete every todo"),
    ):
        bulk_parser = subparsers.add_parser(name, help=help_text)
        bulk_parser.add_argument("-f", "--filter", choices=filter_choices, default="all", help="Status tab")

    return parser


def _report_single(result: Optional[MutationResult], todo_id: Optional[int] = None) -> int:
    if result is None:
        print(f"❌ Todo not found: {todo_id}")
        return 1
    if result.skipped:
        print(f"ℹ️ Nothing to do: {result.reason}")
    elif result.ok:
        print(f"✅ {result.action} ok" + (f" (#{result.todo_id})" if result.todo_id else ""))
    else:
        print(f"❌ {result.action} failed: {result.reason}")
        return 1
    return 0


def _report_bulk(result: BulkResult) -> int:
    if result.skipped:
        print(f"ℹ️ {result.action}: nothing to do")
        return 0
    print(f"{'✅' if result.ok else '⚠️'} {result.action}: {result.succeeded} succeeded, {result.failed} failed")
    for r in result.results:
        if not r.ok:
            print(f"   ❌ #{r.todo_id}: {r.reason}")
    return 0 if result.ok else 1


async def run(args: argparse.Namespace, manager: TodoManager) -> int:
    try:
        if not await manager.start():
            print(f"❌ Could not fetch todos: {manager.cache.last_error}")
            return 1

        if getattr(args, "filter", None):
            await manager.set_filter(args.filter)

        code = 0
        if args.command == "add":
            code = _report_single(await manager.add(args.body))
        elif args.command == "complete":
            code = _report_single(await manager.complete(args.todo_id), args.todo_id)
        elif args.command == "delete":
            code = _report_single(await manager.delete(args.todo_id), args.todo_id)
        elif args.command == "complete-all":
            code = _report_bulk(await manager.complete_all())
        elif args.command == "delete-all":
            code = _report_bulk(await manager.delete_all())

        await manager.cache.wait_idle()
        if getattr(args, "json", False):
            print(json.dumps(manager.to_dict(), indent=2))
        else:
            print(manager.status_report())
        return code
    finally:
        await manager.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = ClientConfig.from_env(
            base_url=args.url,
            timeout=args.timeout,
            log_level=args.log_level
        )
    except PydanticValidationError as e:
        print(f"❌ Invalid configuration: {e}")
        return 1

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    manager = TodoManager(HttpTodoService(config.base_url, timeout=config.timeout))
    try:
        return asyncio.run(run(args, manager))
    except ValidationError as e:
        print(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
