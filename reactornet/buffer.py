"""Growable byte buffer with a cheap prepend area.

Layout::

    | prependable | readable | writable |
    0      <=  reader  <=  writer  <=  size
"""

from __future__ import annotations

import os
import socket

K_CHEAP_PREPEND = 8
K_INITIAL_SIZE = 1024
_EXTRA_READ = 65536
_TEXT_ENCODING = "utf-8"
_TEXT_ERRORS = "surrogateescape"


def _as_bytes(data) -> bytes:
    if isinstance(data, str):
        return data.encode(_TEXT_ENCODING, _TEXT_ERRORS)
    return bytes(data)


class Buffer:
    """User-space buffer between the application and a socket.

    Text retrieved from the buffer is decoded as UTF-8 with ``surrogateescape``
    so that arbitrary bytes survive a round trip through ``append``.
    """

    def __init__(self, initial_size: int = K_INITIAL_SIZE) -> None:
        self._data = bytearray(initial_size + K_CHEAP_PREPEND)
        self._reader = K_CHEAP_PREPEND
        self._writer = K_CHEAP_PREPEND

    def __len__(self) -> int:
        return self.readable_bytes()

    def readable_bytes(self) -> int:
        return self._writer - self._reader

    def writable_bytes(self) -> int:
        return len(self._data) - self._writer

    def prependable_bytes(self) -> int:
        return self._reader

    def peek(self) -> bytes:
        """Return the readable bytes without consuming them."""
        return bytes(self._data[self._reader:self._writer])

    def retrieve(self, length: int) -> None:
        if length < 0:
            raise ValueError("length must not be negative")
        if length < self.readable_bytes():
            self._reader += length
        else:
            self.retrieve_all()

    def retrieve_all(self) -> None:
        self._reader = self._writer = K_CHEAP_PREPEND

    def retrieve_all_as_string(self) -> str:
        return self.retrieve_as_string(self.readable_bytes())

    def retrieve_as_string(self, length: int) -> str:
        if length < 0:
            raise ValueError("length must not be negative")
        chunk = bytes(self._data[self._reader:self._reader + length])
        self.retrieve(length)
        return chunk.decode(_TEXT_ENCODING, _TEXT_ERRORS)

    def ensure_writable_bytes(self, length: int) -> None:
        if self.writable_bytes() < length:
            self._make_space(length)

    def append(self, data) -> None:
        """Append bytes (or text, encoded as UTF-8) to the readable region."""
        chunk = _as_bytes(data)
        self.ensure_writable_bytes(len(chunk))
        self._data[self._writer:self._writer + len(chunk)] = chunk
        self._writer += len(chunk)

    def read_fd(self, sock) -> int:
        """Read once from a socket or file descriptor into the buffer.

        Returns the number of bytes read; 0 means end of stream. OS errors,
        including ``BlockingIOError``, propagate to the caller.
        """
        writable = self.writable_bytes()
        limit = writable + _EXTRA_READ if writable < _EXTRA_READ else writable
        if isinstance(sock, int):
            chunk = os.read(sock, limit)
        else:
            chunk = sock.recv(limit)
        self.append(chunk)
        return len(chunk)

    def write_fd(self, sock) -> int:
        """Write the readable bytes once; return how many were written.

        The written bytes are not consumed; call ``retrieve`` afterwards.
        """
        pending = self.peek()
        if isinstance(sock, int):
            return os.write(sock, pending)
        if isinstance(sock, socket.socket):
            return sock.send(pending)
        return sock.send(pending)

    def _make_space(self, length: int) -> None:
        if self.writable_bytes() + self.prependable_bytes() < length + K_CHEAP_PREPEND:
            needed = self._writer + length
            self._data.extend(bytes(needed - len(self._data)))
        else:
            readable = self.readable_bytes()
            self._data[K_CHEAP_PREPEND:K_CHEAP_PREPEND + readable] = self._data[
                self._reader:self._writer
            ]
            self._reader = K_CHEAP_PREPEND
            self._writer = self._reader + readable