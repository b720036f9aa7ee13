"""
Command line entry points for the audio relay.

``main`` runs the relay server; flags override values read from the
environment / .env file. ``source_main`` streams an audio file to a running
relay as its source.
"""

import argparse
import asyncio
import logging
import os
import sys
from dataclasses import replace
from typing import Optional

from .config import RelayConfigManager
from .core.types import DEFAULT_RELAY_URL, Role
from .infrastructure import (
    ConfigurationError,
    SourceConflictError,
    WebSocketError,
    setup_logging,
)
from .websockets.client import RelayClient
from .websockets.server import run_relay


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line flags."""
    parser = argparse.ArgumentParser(description="Run the live audio relay server")
    parser.add_argument("--env-file", default=".env", help="Path to environment file")
    parser.add_argument("--host", help="Host address to bind to")
    parser.add_argument("--port", type=int, help="Port to listen on")
    parser.add_argument("--path", help="WebSocket path accepting connections")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        help="Logging level",
    )
    parser.add_argument("--log-file", help="Optional log file path")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Start the WebSocket relay server and block until it stops."""
    args = parse_args(argv)

    try:
        config = RelayConfigManager(args.env_file).get_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    overrides = {
        key: value
        for key, value in (
            ("host", args.host),
            ("port", args.port),
            ("path", args.path),
            ("log_level", args.log_level),
        )
        if value is not None
    }
    try:
        config = replace(config, **overrides)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logger = setup_logging(
        component_name="relay_server",
        log_level=config.log_level,
        log_file=args.log_file,
    )
    logger.info("Starting WebSocket Relay Server...")

    try:
        return asyncio.run(run_relay(config))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
        return 0


def parse_source_args(argv=None) -> argparse.Namespace:
    """Parse command line flags for the source streaming tool."""
    parser = argparse.ArgumentParser(
        description="Stream an audio file to the relay as its source"
    )
    parser.add_argument("--file", required=True, help="Path to the audio file to stream")
    parser.add_argument(
        "--url", default=DEFAULT_RELAY_URL, help="Relay WebSocket URL"
    )
    parser.add_argument(
        "--chunk-size", type=int, default=4096, help="Bytes per binary frame"
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=0.0,
        help="Seconds to wait between frames (0 sends as fast as possible)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
        default="INFO",
        help="Logging level",
    )
    return parser.parse_args(argv)


async def stream_source(
    url: str,
    path: str,
    chunk_size: int = 4096,
    interval: float = 0.0,
    logger: Optional[logging.Logger] = None,
) -> int:
    """
    Connect as the source, stream one file and disconnect.

    Returns:
        Process exit code: 0 on success, 1 on connection failure,
        3 if another source already holds the relay
    """
    client = RelayClient(url, Role.SOURCE, logger=logger)
    try:
        await client.connect()
        await client.stream_file(path, chunk_size=chunk_size, interval=interval)
    except SourceConflictError as e:
        client.logger.error(f"Relay refused this source: {e}")
        return 3
    except WebSocketError as e:
        client.logger.error(f"Streaming failed: {e}")
        return 1
    finally:
        await client.disconnect()
    return 0


def source_main(argv=None) -> int:
    """Stream a file to the relay, the command line counterpart of ``main``."""
    args = parse_source_args(argv)

    if not os.path.isfile(args.file):
        print(f"Audio file not found: {args.file}", file=sys.stderr)
        return 2
    if args.chunk_size < 1:
        print("--chunk-size must be at least 1", file=sys.stderr)
        return 2

    logger = setup_logging(component_name="relay_source", log_level=args.log_level)
    logger.info(f"Streaming {args.file} to {args.url}")

    try:
        return asyncio.run(
            stream_source(args.url, args.file, args.chunk_size, args.interval, logger)
        )
    except KeyboardInterrupt:
        logger.info("Streaming interrupted by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
