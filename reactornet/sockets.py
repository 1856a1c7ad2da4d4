"""Ownership and options of a TCP socket."""

from __future__ import annotations

import socket

from .inet_address import InetAddress
from .logger import log_error, log_fatal

_LISTEN_BACKLOG = 1024


def create_nonblocking() -> socket.socket:
    """Create a non-blocking IPv4 TCP socket; fatal on failure."""
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
    except OSError as exc:
        log_fatal("listen socket create err:%d", exc.errno or 0)
    sock.setblocking(False)
    return sock


class Socket:
    """Owns a socket for its lifetime and sets options on it."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock

    def __enter__(self) -> Socket:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def sock(self) -> socket.socket:
        return self._sock

    def fd(self) -> int:
        return self._sock.fileno()

    def bind_address(self, local_addr: InetAddress) -> None:
        try:
            self._sock.bind(local_addr.sockaddr())
        except OSError:
            log_fatal("bind sockfd:%d fail", self.fd())

    def listen(self) -> None:
        try:
            self._sock.listen(_LISTEN_BACKLOG)
        except OSError:
            log_fatal("listen sockfd:%d fail", self.fd())

    def accept(self) -> tuple[socket.socket, InetAddress]:
        """Accept one connection as a non-blocking socket with its peer address.

        OS errors, including ``BlockingIOError``, propagate to the caller.
        """
        conn, addr = self._sock.accept()
        conn.setblocking(False)
        return conn, InetAddress.from_sockaddr(addr)

    def shutdown_write(self) -> None:
        try:
            self._sock.shutdown(socket.SHUT_WR)
        except OSError:
            log_error("shutdownWrite error")

    def set_tcp_no_delay(self, on: bool) -> None:
        self._setopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, on)

    def set_reuse_addr(self, on: bool) -> None:
        self._setopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, on)

    def set_reuse_port(self, on: bool) -> None:
        option = getattr(socket, "SO_REUSEPORT", None)
        if option is not None:
            self._setopt(socket.SOL_SOCKET, option, on)

    def set_keep_alive(self, on: bool) -> None:
        self._setopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, on)

    def close(self) -> None:
        self._sock.close()

    def _setopt(self, level: int, option: int, on: bool) -> None:
        try:
            self._sock.setsockopt(level, option, 1 if on else 0)
        except OSError as exc:
            log_error("setsockopt error:%s", exc)