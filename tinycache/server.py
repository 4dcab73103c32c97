#!/usr/bin/env python3
"""
TinyCache Server Entry Point

Usage:
    python -m tinycache.server                         # Settings from tiny_cache.conf / env
    python -m tinycache.server --port 11311            # Custom port
    python -m tinycache.server --host 127.0.0.1        # Custom host
    python -m tinycache.server --sweep-interval 5      # Sweep every 5 seconds
    python -m tinycache.server --config other.conf     # Alternate config file
    python -m tinycache.server --debug                 # Enable debug logging

Environment Variables:
    TINY_CACHE_CONFIG          - Config file path (default tiny_cache.conf)
    TINY_CACHE_HOST            - Server bind address
    TINY_CACHE_PORT            - Server port
    TINY_CACHE_SWEEP_INTERVAL  - Seconds between expiry sweeps
    TINY_CACHE_DEBUG           - Enable debug mode (true/false)
"""

import argparse
import asyncio
import logging
import signal
import sys
from dataclasses import replace
from typing import List, Optional

from .cache.store import CacheStore
from .config.settings import DEFAULT_CONFIG_FILE, Settings, load_settings, validate
from .network.tcp_server import TinyCacheServer


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="TinyCache: In-Memory Key-Value Cache Server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config",
        type=str,
        default=DEFAULT_CONFIG_FILE,
        help="YAML config file (ignored if missing)",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port number to listen on",
    )

    parser.add_argument(
        "--sweep-interval",
        type=int,
        default=None,
        help="Seconds between expiry sweeps",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    """Combine config file settings with command line overrides."""
    config = load_settings(args.config)

    overrides = {}
    if args.host is not None:
        overrides["HOST"] = args.host
    if args.port is not None:
        overrides["PORT"] = args.port
    if args.sweep_interval is not None:
        overrides["SWEEP_INTERVAL"] = args.sweep_interval
    if args.debug:
        overrides["DEBUG"] = True

    config = replace(config, **overrides)
    validate(config)
    return config


def setup_logging(debug: bool = False, level: str = "INFO") -> None:
    """Configure logging based on debug flag."""
    logging.basicConfig(
        level=logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the server."""
    args = parse_args(argv)

    # Logging must be up before the config file is read so its messages show
    setup_logging(debug=args.debug)
    logger = logging.getLogger(__name__)

    try:
        config = build_settings(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    logging.getLogger().setLevel(
        logging.DEBUG if config.DEBUG else getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    )

    # One store for the whole process, shared by every connection and the sweeper
    store = CacheStore()
    server = TinyCacheServer(
        host=config.HOST,
        port=config.PORT,
        store=store,
        sweep_interval=config.SWEEP_INTERVAL,
    )

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    async def shutdown(sig: signal.Signals) -> None:
        """Handle shutdown signal."""
        logger.info(f"Received signal {sig.name}, initiating shutdown...")
        await server.stop()

    # Register signal handlers (Unix only)
    if sys.platform != 'win32':
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda s=sig: asyncio.create_task(shutdown(s))
            )

    logger.info("Starting TinyCache server")
    logger.info(f"  Host: {config.HOST}")
    logger.info(f"  Port: {config.PORT}")
    logger.info(f"  Sweep interval: {config.SWEEP_INTERVAL}s")
    logger.info(f"  Debug: {config.DEBUG}")

    try:
        loop.run_until_complete(server.start())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
        loop.run_until_complete(server.stop())
    except Exception as e:
        logger.error(f"Server error: {e}")
        raise
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()
        logger.info("Server shutdown complete")


if __name__ == "__main__":
    main()
