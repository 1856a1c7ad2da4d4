"""Listening socket of the main loop, handing accepted connections on."""

from __future__ import annotations

import errno
import socket
from typing import Callable, Optional

from .channel import Channel
from .event_loop import EventLoop
from .inet_address import InetAddress
from .logger import log_error, log_info
from .sockets import Socket, create_nonblocking
from .timestamp import Timestamp

NewConnectionCallback = Callable[[socket.socket, InetAddress], None]


class Acceptor:
    """Accepts connections on ``listen_addr`` inside ``loop``.

    Each accepted connection goes to ``new_connection_callback``; with no
    callback set it is closed at once.
    """

    def __init__(self, loop: EventLoop, listen_addr: InetAddress, reuseport: bool) -> None:
        self._loop = loop
        self._socket = Socket(create_nonblocking())
        self._channel = Channel(loop, self._socket.fd())
        self._listening = False
        self._closed = False
        self.new_connection_callback: Optional[NewConnectionCallback] = None
        self._socket.set_reuse_addr(True)
        self._socket.set_reuse_port(True)
        self._socket.bind_address(listen_addr)
        self._channel.read_callback = self._handle_read

    def __enter__(self) -> Acceptor:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def listening(self) -> bool:
        return self._listening

    @property
    def address(self) -> InetAddress:
        """The address the listening socket is bound to."""
        return InetAddress.from_sockaddr(self._socket.sock.getsockname())

    def listen(self) -> None:
        self._listening = True
        self._socket.listen()
        self._channel.enable_reading()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._channel.disable_all()
        self._channel.remove()
        self._socket.close()

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            conn, peer_addr = self._socket.accept()
        except OSError as exc:
            log_error("Acceptor accept err:%d", exc.errno or 0)
            if exc.errno == errno.ENFILE:
                log_error("Acceptor sockfd reached limit!")
            return
        log_info("Acceptor new connection from %s", peer_addr.to_ip_port())
        if self.new_connection_callback is not None:
            self.new_connection_callback(conn, peer_addr)
        else:
            conn.close()