"""A small shell that runs command lines read from a terminal or a file.

A line holds conditionals separated by `;` or `&` (the latter run in the
background), conditionals chain pipelines with `&&` and `||`, pipelines
join commands with `|`, and commands may redirect their standard streams
with `<`, `>`, `>>` and `N>`.
"""

from __future__ import annotations

import fcntl
import os
import re
import signal
import subprocess
import sys
from dataclasses import dataclass, field
from typing import IO, Dict, List, Optional, Set, Union

from sysprog61.shellparse import CommandLineParser, ConditionalParser, TokenType

__all__ = ["Command", "run_line", "claim_foreground", "set_signal_handler", "main"]

BUFSIZ = 8192

_REDIRECT = re.compile(r"(\d*)(<|>>|>)")
_REDIRECT_FLAGS = {
    "<": os.O_RDONLY,
    ">": os.O_WRONLY | os.O_CREAT | os.O_TRUNC,
    ">>": os.O_WRONLY | os.O_CREAT | os.O_APPEND,
}

_background: Set[int] = set()


class _ShellSyntaxError(ValueError):
    """Raised for a command line the shell cannot parse."""


@dataclass(frozen=True)
class _Redirect:
    fd: int
    op: str
    filename: str


def _parse_redirect(text: str, filename: str) -> _Redirect:
    match = _REDIRECT.fullmatch(text)
    if match is None:
        raise _ShellSyntaxError(f"syntax error near `{text}'")
    digits, op = match.groups()
    fd = int(digits) if digits else (0 if op == "<" else 1)
    if fd not in (0, 1, 2):
        raise _ShellSyntaxError(f"unsupported redirection `{text}'")
    return _Redirect(fd, op, filename)


def _open_redirects(redirects: List[_Redirect]) -> Dict[int, int]:
    """Open every redirection target; return a map from stream to descriptor."""
    opened: Dict[int, int] = {}
    extra: List[int] = []
    try:
        for redirect in redirects:
            fd = os.open(redirect.filename, _REDIRECT_FLAGS[redirect.op], 0o666)
            if redirect.fd in opened:
                extra.append(opened[redirect.fd])
            opened[redirect.fd] = fd
    except OSError:
        for fd in [*opened.values(), *extra]:
            os.close(fd)
        raise
    for fd in extra:
        os.close(fd)
    return opened


@dataclass
class Command:
    """One command: its arguments, redirections and the process running it."""

    args: List[str] = field(default_factory=list)
    redirects: List[_Redirect] = field(default_factory=list)
    pid: int = -1
    stdin: Optional[Union[IO[bytes], int]] = None
    pipe_out: bool = False
    process: Optional[subprocess.Popen] = field(default=None, repr=False)

    def run(self) -> None:
        """Start a child process for this command and record its pid.

        Raises OSError if a redirection target cannot be opened or the
        program cannot be started.
        """
        if self.pid != -1:
            raise RuntimeError("command already started")
        if not self.args:
            raise ValueError("empty command")
        opened = _open_redirects(self.redirects)
        try:
            streams: Dict[int, Optional[Union[IO[bytes], int]]] = {
                0: self.stdin,
                1: subprocess.PIPE if self.pipe_out else None,
                2: None,
            }
            streams.update(opened)
            sys.stdout.flush()
            sys.stderr.flush()
            self.process = subprocess.Popen(
                self.args, stdin=streams[0], stdout=streams[1], stderr=streams[2]
            )
        finally:
            for fd in opened.values():
                os.close(fd)
        self.pid = self.process.pid


def _build_command(parser) -> Command:
    command = Command()
    tokens = iter(parser.token_begin())
    for token in tokens:
        if token.type == TokenType.NORMAL:
            command.args.append(token.value)
        elif token.type == TokenType.REDIRECT_OP:
            target = next(tokens, None)
            if target is None or target.type != TokenType.NORMAL:
                raise _ShellSyntaxError(f"syntax error near `{token.value}'")
            command.redirects.append(_parse_redirect(token.value, target.value))
        else:
            raise _ShellSyntaxError(f"syntax error near `{token.value}'")
    return command


def _report(err: OSError, command: Command) -> None:
    name = err.filename
    if name is None:
        name = command.args[0] if command.args else "sh61"
    print(f"{name}: {err.strerror}", file=sys.stderr)


def _run_pipeline(pipeline) -> bool:
    """Start every command of `pipeline` together; return the last's success."""
    try:
        commands = [_build_command(part) for part in pipeline.command_begin()]
    except _ShellSyntaxError as err:
        print(f"sh61: {err}", file=sys.stderr)
        return False
    if not commands:
        return True

    previous: Optional[Union[IO[bytes], int]] = None
    started: List[Command] = []
    result: Optional[bool] = True
    for index, command in enumerate(commands):
        last = index == len(commands) - 1
        command.stdin = previous
        command.pipe_out = not last
        try:
            if command.args:
                command.run()
                started.append(command)
                result = None
            else:
                for fd in _open_redirects(command.redirects).values():
                    os.close(fd)
                result = True
        except OSError as err:
            _report(err, command)
            result = False
        finally:
            if previous is not None and not isinstance(previous, int):
                previous.close()
        if last:
            break
        out = command.process.stdout if command.process is not None else None
        previous = out if out is not None else subprocess.DEVNULL

    for command in started:
        command.process.wait()
    if result is None:
        return commands[-1].process.returncode == 0
    return result


def _run_conditional(conditional: ConditionalParser) -> bool:
    status = True
    op = None
    for pipeline in conditional.pipeline_begin():
        skip = (op == TokenType.AND and not status) or (op == TokenType.OR and status)
        if not skip:
            status = _run_pipeline(pipeline)
        op = pipeline.next_op()
    return status


def _run_background(conditional: ConditionalParser) -> None:
    sys.stdout.flush()
    sys.stderr.flush()
    pid = os.fork()
    if pid == 0:
        code = 1
        try:
            code = 0 if _run_conditional(conditional) else 1
        finally:
            os._exit(code)
    _background.add(pid)


def _reap_background() -> None:
    for pid in list(_background):
        try:
            done, _ = os.waitpid(pid, os.WNOHANG)
        except ChildProcessError:
            _background.discard(pid)
            continue
        if done == pid:
            _background.discard(pid)


def run_line(parser) -> bool:
    """Run a command line; return whether the last foreground part succeeded.

    `parser` is a `CommandLineParser` or the text of the line.
    """
    if isinstance(parser, str):
        parser = CommandLineParser(parser)
    status = True
    for conditional in parser.conditional_begin():
        if not conditional:
            continue
        if conditional.next_op() == TokenType.BACKGROUND:
            _run_background(conditional)
        else:
            status = _run_conditional(conditional)
    return status


class _Terminal:
    def __init__(self) -> None:
        self.ttyfd: Optional[int] = None
        self.owns_foreground = False
        self.shell_pgid = -1


_terminal = _Terminal()


def claim_foreground(pgid: int) -> bool:
    """Make `pgid` (or the shell's own group if 0) the terminal's foreground.

    Returns False, doing nothing, when the shell does not own the terminal.
    """
    if _terminal.ttyfd is None:
        try:
            fd = os.open("/dev/tty", os.O_RDWR)
        except OSError:
            _terminal.ttyfd = -1
        else:
            try:
                ttyfd = fcntl.fcntl(fd, fcntl.F_DUPFD, 10)
            finally:
                os.close(fd)
            fcntl.fcntl(ttyfd, fcntl.F_SETFD, fcntl.FD_CLOEXEC)
            _terminal.ttyfd = ttyfd
            _terminal.shell_pgid = os.getpgrp()
            try:
                _terminal.owns_foreground = _terminal.shell_pgid == os.tcgetpgrp(ttyfd)
            except OSError:
                _terminal.owns_foreground = False
    if not _terminal.owns_foreground:
        return False
    os.tcsetpgrp(_terminal.ttyfd, pgid or _terminal.shell_pgid)
    return True


def set_signal_handler(signo: int, handler):
    """Install `handler` (or SIG_DFL/SIG_IGN) for `signo`; return the old one."""
    return signal.signal(signo, handler)


def _command_loop(command_file, quiet: bool) -> None:
    buffer = ""
    need_prompt = True
    while True:
        if need_prompt and not quiet:
            sys.stdout.write(f"sh61[{os.getpid()}]$ ")
            sys.stdout.flush()
            need_prompt = False
        try:
            chunk = command_file.readline(BUFSIZ - 1 - len(buffer))
        except OSError as err:
            print(f"sh61: {err.strerror}", file=sys.stderr)
            break
        if not chunk:
            break
        buffer += chunk
        if len(buffer) == BUFSIZ - 1 or buffer.endswith("\n"):
            run_line(CommandLineParser(buffer))
            buffer = ""
            need_prompt = True
        _reap_background()


def main(argv: Optional[List[str]] = None) -> int:
    """Run the shell: `[-q] [FILE]`; `-q` suppresses prompts."""
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)
    quiet = False
    if argv and argv[0] == "-q":
        quiet = True
        argv = argv[1:]

    if argv:
        try:
            command_file = open(argv[0], encoding="utf-8", errors="surrogateescape", newline="")
        except OSError as err:
            print(f"{argv[0]}: {err.strerror}", file=sys.stderr)
            return 1
    else:
        command_file = sys.stdin

    claim_foreground(0)
    set_signal_handler(signal.SIGTTOU, signal.SIG_IGN)
    try:
        _command_loop(command_file, quiet)
    finally:
        if command_file is not sys.stdin:
            command_file.close()
    return 0