#!/usr/bin/env python3
"""Simple CLI for running the RFQ node locally"""

import argparse
import asyncio
import signal
from typing import List, Optional

from ilayer.config import settings
from ilayer.core.rfq import ResponseTimeoutError, RfqError, bucket_of, new_identity, topic_for
from ilayer.logging_config import setup_logging
from ilayer.node import RfqNode
from ilayer.providers.static_prices import StaticPriceProvider
from ilayer.types import QuoteRequest, QuoteResponse, RequestSide, TokenWeight


def parse_token(value: str) -> TokenWeight:
    """Parse ``address:weight``."""
    address, sep, weight = value.rpartition(":")
    if not sep or not address:
        raise argparse.ArgumentTypeError(f"Expected address:weight, got {value!r}")
    try:
        return TokenWeight(address=address, weight=float(weight))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid weight in {value!r}")


def print_response(response: QuoteResponse) -> None:
    """Pretty print a quote response"""
    print("\n💱 Quote Response")
    print("=" * 50)
    print(f"Solver: {response.solver}")
    print(f"From ({response.from_.network}):")
    for token in response.from_.tokens:
        print(f"   {token.address}  {token.amount:>18,.6f}")
    print(f"To ({response.to.network}):")
    for token in response.to.tokens:
        amount = f"{token.amount:>18,.6f}" if token.amount else "          no price"
        print(f"   {token.address}  {amount}")


async def _round_trip(node: RfqNode, build, timeout: float) -> None:
    await node.start()
    try:
        requester = node.requester
        request: QuoteRequest = build(requester)
        print(f"📨 Requesting quote from bucket {requester.bucket} (timeout {timeout:g}s)...")
        response = await requester.request_quote(request, timeout=timeout)
        print_response(response)
    except ResponseTimeoutError as e:
        print(f"⌛ {e}")
    except RfqError as e:
        print(f"❌ Error: {e}")
    finally:
        await node.stop()


async def cli_request(from_network: str, from_tokens: List[TokenWeight], to_network: str,
                      to_tokens: List[TokenWeight], timeout: float):
    """Send one request and wait for its response"""
    node = RfqNode(role="requester")
    await _round_trip(
        node,
        lambda requester: requester.build_request(
            RequestSide(network=from_network, tokens=from_tokens),
            RequestSide(network=to_network, tokens=to_tokens),
        ),
        timeout,
    )


async def cli_sample(timeout: float, local: bool):
    """Send the sample request; ``local`` runs a solver in-process on the memory bus"""
    if local:
        node = RfqNode(role="both", transport="memory", price_feed=StaticPriceProvider())
    else:
        node = RfqNode(role="requester")
    await _round_trip(node, lambda requester: requester.sample_request(), timeout)


async def cli_solver():
    """Run a solver until interrupted"""
    node = RfqNode(role="solver")
    await node.start()
    print(f"🧮 Solver {node.solver.public_key} listening on {node.solver.session.request_topic}")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await stop_event.wait()
    await node.stop()
    print("\nGoodbye! 👋")


def cli_bucket():
    """Print a fresh identity with its bucket and response topic"""
    identity = new_identity()
    bucket = bucket_of(identity.public_key)
    print(f"Public key: {identity.public_key}")
    print(f"Address:    {identity.address}")
    print(f"Bucket:     {bucket}")
    print(f"Topic:      {topic_for(bucket)}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="iLayer RFQ CLI")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("solver", help="Run a solver until interrupted")

    request_parser = subparsers.add_parser("request", help="Request a quote and wait for the response")
    request_parser.add_argument("--from-network", default="mainnet")
    request_parser.add_argument("--from", dest="from_tokens", type=parse_token, action="append", required=True,
                                help="Source token as address:amount")
    request_parser.add_argument("--to-network", default="base")
    request_parser.add_argument("--to", dest="to_tokens", type=parse_token, action="append", required=True,
                                help="Destination token as address:percent (repeatable)")
    request_parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for a solver")

    sample_parser = subparsers.add_parser("sample", help="Send the sample WETH -> USDC/USDT request")
    sample_parser.add_argument("--timeout", type=float, default=None, help="Seconds to wait for a solver")
    sample_parser.add_argument("--local", action="store_true", help="Run a solver in-process on the memory bus")

    subparsers.add_parser("bucket", help="Print a fresh identity and its bucket")

    return parser


async def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    setup_logging(args.log_level)
    command = args.command.lower()
    timeout = getattr(args, "timeout", None) or settings.quote_timeout_seconds

    if command == "solver":
        await cli_solver()

    elif command == "request":
        await cli_request(args.from_network, args.from_tokens, args.to_network, args.to_tokens, timeout)

    elif command == "sample":
        await cli_sample(timeout, args.local)

    elif command == "bucket":
        cli_bucket()

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


if __name__ == "__main__":
    asyncio.run(main())
