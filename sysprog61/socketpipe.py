"""Run a pipeline of commands connected by loopback TCP sockets.

Usage: ``socketpipe [-P BUFSIZE] CMD1 ARG... "|" CMD2 ARG...``
"""

from __future__ import annotations

import re
import socket
import struct
import subprocess
import sys
from typing import List, Optional, Tuple

__all__ = ["UsageError", "parse_buffer_option", "split_commands", "main"]

USAGE = 'Usage: ./socketpipe CMD1 ARG... "|" CMD2 ARG...'
_INT_MAX = 2**31 - 1
_ULONG = re.compile(r"\s*\+?(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")


class UsageError(Exception):
    """Raised when the command line is malformed."""

    def __init__(self, message: str = USAGE) -> None:
        super().__init__(message)


def _parse_ulong(text: str) -> Optional[int]:
    match = _ULONG.fullmatch(text)
    if match is None:
        return None
    digits = match.group(1)
    if digits[:2] in ("0x", "0X"):
        return int(digits, 16)
    if digits.startswith("0"):
        return int(digits, 8)
    return int(digits)


def parse_buffer_option(argv: List[str]) -> Tuple[int, List[str]]:
    """Strip a leading `-P SIZE` (or `-PSIZE`) option.

    Returns the socket buffer size (0 if none was given) and the rest.
    """
    if not argv or not argv[0].startswith("-P"):
        return 0, list(argv)
    if len(argv[0]) > 2:
        value, rest = argv[0][2:], argv[1:]
    elif len(argv) > 1:
        value, rest = argv[1], argv[2:]
    else:
        raise UsageError()
    size = _parse_ulong(value)
    if size is None or size > _INT_MAX:
        raise UsageError()
    return size, list(rest)


def split_commands(argv: List[str]) -> List[List[str]]:
    """Split `argv` at each `|` word into non-empty commands."""
    if not argv:
        raise UsageError()
    commands: List[List[str]] = [[]]
    for word in argv:
        if word == "|":
            commands.append([])
        else:
            commands[-1].append(word)
    if any(not command for command in commands):
        raise UsageError()
    return commands


def _socket_channel(sockbuf: int) -> Tuple[socket.socket, socket.socket]:
    """Return a connected (reader, writer) pair of one-way loopback sockets."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind(("127.0.0.1", 0))
        listener.listen(2)
        address = listener.getsockname()
        reader = socket.create_connection(address)
        writer, _ = listener.accept()
    reader.shutdown(socket.SHUT_WR)
    writer.shutdown(socket.SHUT_RD)
    if sockbuf:
        writer.setsockopt(socket.SOL_SOCKET, socket.SO_SNDBUF, sockbuf)
        reader.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, sockbuf)
        timeout = struct.pack("ll", 0, 1000)
        writer.setsockopt(socket.SOL_SOCKET, socket.SO_SNDTIMEO, timeout)
        reader.setsockopt(socket.SOL_SOCKET, socket.SO_RCVTIMEO, timeout)
    return reader, writer


def main(argv: Optional[List[str]] = None) -> int:
    """Run the pipeline; return the exit status of its last command."""
    if argv is None:
        argv = sys.argv[1:]
    try:
        sockbuf, rest = parse_buffer_option(list(argv))
        commands = split_commands(rest)
    except UsageError as err:
        print(err, file=sys.stderr)
        return 1

    processes: List[subprocess.Popen] = []
    previous: Optional[socket.socket] = None
    status = 1
    try:
        for index, args in enumerate(commands):
            last = index == len(commands) - 1
            reader: Optional[socket.socket] = None
            writer: Optional[socket.socket] = None
            if not last:
                try:
                    reader, writer = _socket_channel(sockbuf)
                except OSError as err:
                    print(f"socketpair: {err.strerror}", file=sys.stderr)
                    return 1
            process: Optional[subprocess.Popen] = None
            try:
                sys.stdout.flush()
                process = subprocess.Popen(
                    args,
                    stdin=previous.fileno() if previous is not None else None,
                    stdout=writer.fileno() if writer is not None else None,
                )
            except OSError as err:
                print(f"{args[0]}: {err.strerror}", file=sys.stderr)
            finally:
                if previous is not None:
                    previous.close()
                if writer is not None:
                    writer.close()
            previous = reader
            if process is not None:
                processes.append(process)
            if last and process is not None:
                code = process.wait()
                status = code if code >= 0 else 128 - code
    finally:
        if previous is not None:
            previous.close()
        for process in processes:
            process.wait()
    return status