"""Command-line client.

    python -m toolrelay.client list
    python -m toolrelay.client call add '{"a": 25.6, "b": 50}'
"""
import argparse
import asyncio
import json
import logging
import sys

from toolrelay.client.correlator import ToolClient
from toolrelay.config import settings
from toolrelay.core.errors import ChannelClosedError, RequestRejectedError, ToolCallError


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="python -m toolrelay.client")
    parser.add_argument("--url", default=settings.server_url, help="Relay server base URL")
    parser.add_argument("--timeout", type=float, default=30.0, help="Seconds to wait for a reply")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List registered tools")

    call = sub.add_parser("call", help="Call a tool")
    call.add_argument("name")
    call.add_argument("arguments", nargs="?", default="{}", help="JSON object of tool arguments")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    async with ToolClient(args.url) as client:
        if args.command == "list":
            for tool in await client.fetch_tools(timeout=args.timeout):
                print(f"{tool.name}: {tool.description}")
            return 0

        arguments = json.loads(args.arguments)
        try:
            result = await client.call_tool(args.name, arguments, timeout=args.timeout)
        except (ToolCallError, RequestRejectedError, ChannelClosedError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        for block in result.content:
            print(block.text)
        return 1 if result.isError else 0


def main(argv=None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        print("Closing SSE connection...", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
