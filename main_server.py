#!/usr/bin/env python3
"""
LAN Chat Server - Main Entry Point

Usage:
    python main_server.py [--host HOST] [--port PORT]

Optional arguments:
    --host HOST           Bind address (default: 0.0.0.0)
    --port PORT           TCP port, 1024-65535 (default: 5000)
    --log-level LEVEL     DEBUG, INFO, WARNING or ERROR (default: INFO)
    --log-file [PATH]     Also write the log to a file (default path: logs/chat_server.log)
"""

import argparse
import asyncio
import logging
import sys

from common.constants import DEFAULT_PORT, DEFAULT_SERVER_HOST, MAX_PORT, MIN_PORT
from common.validation import is_valid_port
from server.main_server import HostServer
from server.utils.config import ServerConfig
from server.utils.logger import logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='LAN Chat Server')
    parser.add_argument('--host', type=str, default=DEFAULT_SERVER_HOST,
                        help=f'Host to bind to (default: {DEFAULT_SERVER_HOST})')
    parser.add_argument('--port', type=str, default=str(DEFAULT_PORT),
                        help=f'TCP port for the server (default: {DEFAULT_PORT})')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: INFO)')
    parser.add_argument('--log-file', type=str, nargs='?', const=ServerConfig.default_log_file(),
                        default=None, help='Mirror the log to a file')
    return parser


async def run_server(config: ServerConfig) -> int:
    """Start the server and run until cancelled. Returns a process exit code."""
    server = HostServer(config)
    if not await server.start():
        return 1
    try:
        await server.serve_until_stopped()
    finally:
        await server.stop()
    return 0


def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if not is_valid_port(args.port):
        print(f"Invalid port. Must be between {MIN_PORT} and {MAX_PORT}.", file=sys.stderr)
        return 2

    config = ServerConfig(
        host=args.host,
        port=int(args.port),
        log_level=getattr(logging, args.log_level),
        log_file=args.log_file
    )
    logger.configure(config.log_level, config.log_file)

    try:
        return asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
