"""Unbuffered byte-oriented file wrappers over raw file descriptors."""

from __future__ import annotations

import os
import stat
import sys
from typing import Optional

__all__ = [
    "Io61File",
    "fdopen",
    "open_check",
    "read_bytewise",
    "write_bytewise",
]

_O_ACCMODE = os.O_RDONLY | os.O_WRONLY | os.O_RDWR


class Io61File:
    """A file opened for reading or writing through a file descriptor.

    Every character is transferred with its own system call; there is no
    caching, so `flush` has nothing to do.
    """

    def __init__(self, fd: int, mode: int) -> None:
        if fd < 0:
            raise ValueError(f"invalid file descriptor {fd}")
        self.fd = fd
        self.mode = mode

    def __repr__(self) -> str:
        return f"{type(self).__name__}(fd={self.fd}, mode={self.mode})"

    def readc(self) -> Optional[int]:
        """Read one byte; return it, or None at end of file.

        Raises OSError if the underlying read fails.
        """
        data = os.read(self.fd, 1)
        if not data:
            return None
        return data[0]

    def read(self, size: int) -> bytes:
        """Read up to `size` bytes.

        Returns fewer bytes on end of file or on an error that occurs after
        some bytes were read (a short read). An error before any byte was
        read is raised.
        """
        out = bytearray()
        while len(out) != size:
            try:
                ch = self.readc()
            except OSError:
                if out:
                    break
                raise
            if ch is None:
                break
            out.append(ch)
        return bytes(out)

    def writec(self, ch: int) -> None:
        """Write a single byte (`ch` truncated to 8 bits)."""
        written = os.write(self.fd, bytes((ch & 0xFF,)))
        if written != 1:
            raise OSError(f"short write on file descriptor {self.fd}")

    def write(self, data: bytes) -> int:
        """Write `data`, returning how many bytes were written.

        A partial count is returned if an error occurs after some bytes were
        written; an error before any byte was written is raised.
        """
        written = 0
        for ch in data:
            try:
                self.writec(ch)
            except OSError:
                if written:
                    break
                raise
            written += 1
        return written

    def flush(self) -> None:
        """Force out any cached data (there is none to force)."""

    def seek(self, offset: int) -> None:
        """Move the file position to `offset` bytes from the start."""
        os.lseek(self.fd, offset, os.SEEK_SET)

    def fileno(self) -> int:
        """Return the underlying file descriptor."""
        return self.fd

    def filesize(self) -> Optional[int]:
        """Return the file's size, or None if it has no well-defined size."""
        try:
            st = os.fstat(self.fd)
        except OSError:
            return None
        if not stat.S_ISREG(st.st_mode):
            return None
        return st.st_size

    def close(self) -> None:
        """Flush and close the file descriptor."""
        self.flush()
        fd, self.fd = self.fd, -1
        os.close(fd)

    def __enter__(self) -> "Io61File":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self.fd >= 0:
            self.close()


def fdopen(fd: int, mode: int) -> Io61File:
    """Wrap file descriptor `fd`; `mode` is os.O_RDONLY or os.O_WRONLY."""
    return Io61File(fd, mode)


def open_check(filename: Optional[str], flags: int) -> Io61File:
    """Open `filename` with `flags`, or standard input/output if it is None.

    Prints an error and exits with status 1 if the file cannot be opened.
    """
    if filename is None:
        fd = 0 if (flags & _O_ACCMODE) == os.O_RDONLY else 1
    else:
        try:
            fd = os.open(filename, flags, 0o666)
        except OSError as err:
            print(f"{filename}: {err.strerror}", file=sys.stderr)
            sys.exit(1)
    return fdopen(fd, flags & _O_ACCMODE)


def read_bytewise(f: Io61File, size: int) -> bytes:
    """Read up to `size` bytes using one `readc` call per byte."""
    out = bytearray()
    while len(out) != size:
        try:
            ch = f.readc()
        except OSError:
            break
        if ch is None:
            break
        out.append(ch)
    return bytes(out)


def write_bytewise(f: Io61File, data: bytes) -> int:
    """Write `data` using one `writec` call per byte; return bytes written."""
    written = 0
    for ch in data:
        try:
            f.writec(ch)
        except OSError:
            break
        written += 1
    return written