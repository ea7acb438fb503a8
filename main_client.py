#!/usr/bin/env python3
"""
LAN Chat Client - Main Entry Point

Console client for the chat server.

Usage:
    python main_client.py --username NAME [--server-ip HOST] [--port PORT]

Commands once connected:
    Broadcast <message>     send to everyone
    <username> <message>    send to one user
    /users                  show who is online
    /nick <name>            retry with another name after a rejection
    exit                    leave the chat
"""

import argparse
import asyncio
import sys
from typing import Optional, Tuple

from common.constants import BROADCAST, DEFAULT_HOST, DEFAULT_PORT, MAX_USERNAME_LENGTH, SYSTEM_SENDER
from common.validation import is_valid_ip_address, is_valid_port, is_valid_username
from client.chat.chat_client import ChatClient, ClientCallbacks
from client.utils.logger import logger


def parse_command(line: str) -> Tuple[str, Optional[str], Optional[str]]:
    """
    Split one input line into (action, target, text).

    Actions: 'exit', 'users', 'nick', 'send', 'invalid', 'empty'.
    """
    line = line.strip()
    if not line:
        return 'empty', None, None
    if line.lower() == 'exit':
        return 'exit', None, None
    if line == '/users':
        return 'users', None, None
    if line.startswith('/nick'):
        name = line[len('/nick'):].strip()
        return ('nick', name, None) if name else ('invalid', None, None)

    parts = line.split(None, 1)
    if len(parts) < 2:
        return 'invalid', None, None
    return 'send', parts[0], parts[1]


class ConsoleChat:
    """Prints client events and feeds stdin lines to a ChatClient."""

    def __init__(self, username: str):
        self.username = username
        self.client = ChatClient(ClientCallbacks(
            on_message=self.on_message,
            on_roster=self.on_roster,
            on_connection_lost=self.on_connection_lost,
            on_error=self.on_error,
        ))

    def on_message(self, sender: str, body: str):
        if sender == SYSTEM_SENDER:
            print(f"*** {body}")
        elif sender != self.client.username:
            print(f"{sender}: {body}")

    def on_roster(self, names):
        print(f"Online: {', '.join(names)}")

    def on_connection_lost(self):
        print("Connection to server lost.")

    def on_error(self, reason: str):
        print(f"Error: {reason}. Use /nick <name> to try another username.")

    async def run(self, host: str, port: int) -> int:
        if not await self.client.connect(host, port, self.username):
            print(f"Could not connect to {host}:{port}", file=sys.stderr)
            return 1

        print(f"Commands: '{BROADCAST} <message>' or '<username> <message>' or 'exit'")
        loop = asyncio.get_running_loop()
        try:
            while self.client.is_connected:
                line = await loop.run_in_executor(None, sys.stdin.readline)
                if not line:
                    break
                if not await self.handle_line(line):
                    break
        finally:
            await self.client.disconnect()
        return 0

    async def handle_line(self, line: str) -> bool:
        """Act on one input line. False means the user asked to leave."""
        action, target, text = parse_command(line)
        if action == 'exit':
            return False
        if action == 'users':
            print(f"Online: {', '.join(self.client.connected_users)}")
        elif action == 'nick':
            if is_valid_username(target):
                self.username = target
                await self.client.join(target)
            else:
                print(f"Username must be 1-{MAX_USERNAME_LENGTH} characters")
        elif action == 'send':
            await self.client.send_text(target, text)
        elif action == 'invalid':
            print(f"Usage: '{BROADCAST} <message>' or '<username> <message>'")
        return True


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description='LAN Chat Client')
    parser.add_argument('--username', type=str, default=None,
                        help='Username for chat (asked interactively if omitted)')
    parser.add_argument('--server-ip', type=str, default=DEFAULT_HOST,
                        help=f'Server IP address (default: {DEFAULT_HOST})')
    parser.add_argument('--port', type=str, default=str(DEFAULT_PORT),
                        help=f'Server port (default: {DEFAULT_PORT})')
    args = parser.parse_args(argv)

    if not is_valid_ip_address(args.server_ip):
        print("Invalid server IP address", file=sys.stderr)
        return 2
    if not is_valid_port(args.port):
        print("Invalid port number", file=sys.stderr)
        return 2

    username = args.username
    if username is None:
        username = input("Enter username: ").strip()
    if not is_valid_username(username):
        print(f"Username must be 1-{MAX_USERNAME_LENGTH} characters", file=sys.stderr)
        return 2

    try:
        return asyncio.run(ConsoleChat(username).run(args.server_ip, int(args.port)))
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 0
    except Exception as e:
        logger.log_error("client", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
