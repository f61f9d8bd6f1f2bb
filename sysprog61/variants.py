"""Alternative io61 file implementations used as performance baselines.

`SyscallFile` makes exactly one system call per block read or write.
`StdioFile` delegates to Python's buffered binary streams.
"""

from __future__ import annotations

import errno
import io
import os
import stat
from typing import Optional

from sysprog61.io61 import Io61File

__all__ = ["SyscallFile", "StdioFile"]


class SyscallFile(Io61File):
    """An unbuffered file whose block operations are single system calls."""

    def read(self, size: int) -> bytes:
        """Read up to `size` bytes with one `read` system call."""
        return os.read(self.fd, size)

    def write(self, data: bytes) -> int:
        """Write `data` with one `write` system call; return bytes written."""
        return os.write(self.fd, data)


class StdioFile:
    """A file wrapper backed by a buffered binary stream."""

    def __init__(self, fd: int, mode: int) -> None:
        if fd < 0:
            raise ValueError(f"invalid file descriptor {fd}")
        self.mode = mode
        self._file = os.fdopen(fd, "rb" if mode == os.O_RDONLY else "wb")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(stream={self._file!r}, mode={self.mode})"

    def readc(self) -> Optional[int]:
        """Read one byte; return it, or None at end of file."""
        data = self._file.read(1)
        if data is None:
            raise BlockingIOError(errno.EAGAIN, os.strerror(errno.EAGAIN))
        if not data:
            return None
        return data[0]

    def read(self, size: int) -> bytes:
        """Read up to `size` bytes, stopping early only at end of file."""
        data = self._file.read(size)
        if data is None:
            raise BlockingIOError(errno.EAGAIN, os.strerror(errno.EAGAIN))
        return data

    def writec(self, ch: int) -> None:
        """Write a single byte (`ch` truncated to 8 bits)."""
        self._file.write(bytes((ch & 0xFF,)))

    def write(self, data: bytes) -> int:
        """Write `data`; return how many bytes were accepted."""
        try:
            return self._file.write(data)
        except BlockingIOError as err:
            if err.characters_written:
                return err.characters_written
            raise

    def flush(self) -> None:
        """Write out any buffered data."""
        self._file.flush()

    def seek(self, offset: int) -> None:
        """Move the file position to `offset` bytes from the start."""
        self._file.seek(offset, io.SEEK_SET)

    def fileno(self) -> int:
        """Return the underlying file descriptor."""
        return self._file.fileno()

    def filesize(self) -> Optional[int]:
        """Return the file's size, or None if it has no well-defined size."""
        try:
            st = os.fstat(self._file.fileno())
        except OSError:
            return None
        if not stat.S_ISREG(st.st_mode):
            return None
        return st.st_size

    def close(self) -> None:
        """Flush buffered data and close the stream."""
        try:
            self.flush()
        finally:
            self._file.close()

    def __enter__(self) -> "StdioFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._file.closed:
            self.close()