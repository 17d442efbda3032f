#!/usr/bin/env python3
"""
Interactive Client for Embedded-Redis

A small redis-cli style client for manually poking at a running server.

Usage:
    python scripts/client.py                  # Connect to localhost:6379
    python scripts/client.py --host 1.2.3.4   # Connect to specific host
    python scripts/client.py --port 6380      # Connect to specific port

Commands are sent as typed, e.g.:
    SET mykey myvalue
    GET mykey
    HSET user:1 name alice
    HGETALL user:1
    KEYS user:*

Client commands:
    help                      - Show this help
    exit                      - Exit client
"""

import argparse
import shlex
import socket
import sys

from embedded_redis.protocol.commands import Reply, ReplyType
from embedded_redis.protocol.parser import ProtocolParser

# Enable command history with arrow keys (works on Unix systems)
try:
    import readline  # noqa: F401
except ImportError:
    pass  # readline not available on Windows by default


class RedisClient:
    """Simple blocking RESP client."""

    def __init__(self, host: str, port: int, timeout: float = 5.0):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.socket = None
        self.parser = ProtocolParser()

    def connect(self) -> bool:
        """Connect to the server."""
        try:
            self.socket = socket.create_connection((self.host, self.port), self.timeout)
            return True
        except OSError as e:
            print(f"Connection error: {e}")
            return False

    def disconnect(self):
        """Disconnect from the server."""
        if self.socket:
            try:
                self.socket.close()
            except OSError:
                pass
            self.socket = None
        self.parser.reset()

    def send_command(self, *args) -> Reply:
        """Send a command and wait for its reply."""
        if not self.socket:
            return Reply.error("ERR not connected")

        try:
            self.socket.sendall(self.parser.encode_command(*args))
            while True:
                reply = self.parser.get_reply()
                if reply is not None:
                    return reply
                chunk = self.socket.recv(4096)
                if not chunk:
                    self.disconnect()
                    return Reply.error("ERR connection closed by server")
                self.parser.feed(chunk)

        except socket.timeout:
            return Reply.error("ERR request timed out")
        except OSError as e:
            return Reply.error(f"ERR {e}")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


def render(reply: Reply, indent: int = 0) -> str:
    """Render a reply the way redis-cli prints it."""
    if reply.type is ReplyType.STATUS:
        return reply.value
    if reply.type is ReplyType.ERROR:
        return f"(error) {reply.value}"
    if reply.type is ReplyType.INTEGER:
        return f"(integer) {reply.value}"
    if reply.type is ReplyType.NULL:
        return "(nil)"
    if reply.type is ReplyType.BULK:
        return '"' + reply.value.decode("utf-8", "backslashreplace") + '"'
    if not reply.value:
        return "(empty array)"

    lines = []
    width = len(str(len(reply.value)))
    for i, item in enumerate(reply.value, 1):
        prefix = " " * indent if i > 1 else ""
        lines.append(f"{prefix}{i:>{width}}) {render(item, indent + width + 2)}")
    return "\n".join(lines)


def print_help():
    """Print help message."""
    print("""
Supported Commands:
-------------------
  PING [message]            HELLO              ECHO <message>
  SET <key> <value>         SETEX <key> <seconds> <value>
  GET <key>                 DEL <key> [key ...]
  EXISTS <key> [key ...]    EXPIRE <key> <seconds>
  TTL <key>                 PERSIST <key>      TYPE <key>
  KEYS <pattern>            DBSIZE             FLUSHDB / FLUSHALL
  HSET <key> <field> <value>                   HGET <key> <field>
  HMSET <key> <field> <value> [field value ...]
  HMGET <key> <field> [field ...]              HDEL <key> <field> [field ...]
  HEXISTS <key> <field>     HKEYS <key>        HVALS <key>
  HGETALL <key>
  LPUSH / RPUSH <key> <value> [value ...]      LLEN <key>
  LRANGE <key> <start> <stop>
  QUIT

Client Commands:
----------------
  help                      Show this help message
  exit                      Exit the client
  reconnect                 Reconnect to the server
""")


def main():
    parser = argparse.ArgumentParser(
        description="Interactive client for Embedded-Redis"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="localhost",
        help="Server host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=6379,
        help="Server port (default: 6379)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Socket timeout in seconds (default: 5.0)"
    )

    args = parser.parse_args()

    client = RedisClient(args.host, args.port, args.timeout)

    if not client.connect():
        print("Failed to connect. Is the server running?")
        print(f"  Try: python -m embedded_redis.server --port {args.port}")
        sys.exit(1)

    prompt = f"{args.host}:{args.port}> "

    try:
        while True:
            try:
                line = input(prompt).strip()
            except EOFError:
                print()
                break

            if not line:
                continue

            lower_cmd = line.lower()
            if lower_cmd == "help":
                print_help()
                continue
            if lower_cmd == "exit":
                break
            if lower_cmd == "reconnect":
                client.disconnect()
                print("Reconnected!" if client.connect() else "Reconnection failed.")
                continue

            try:
                parts = shlex.split(line)
            except ValueError as e:
                print(f"(error) Invalid argument(s): {e}")
                continue

            print(render(client.send_command(*parts)))

            if parts[0].lower() == "quit":
                break

    except KeyboardInterrupt:
        print()
    finally:
        client.disconnect()


if __name__ == "__main__":
    main()
