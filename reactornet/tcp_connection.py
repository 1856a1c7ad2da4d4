"""An established TCP connection served by one event loop."""

from __future__ import annotations

import errno
import functools
import socket
from enum import IntEnum
from typing import Callable, Optional, Union

from .buffer import Buffer
from .channel import Channel
from .event_loop import EventLoop
from .inet_address import InetAddress
from .logger import log_error, log_info
from .sockets import Socket
from .timestamp import Timestamp

ConnectionCallback = Callable[["TcpConnection"], None]
CloseCallback = Callable[["TcpConnection"], None]
WriteCompleteCallback = Callable[["TcpConnection"], None]
MessageCallback = Callable[["TcpConnection", Buffer, Timestamp], None]
HighWaterMarkCallback = Callable[["TcpConnection", int], None]

DEFAULT_HIGH_WATER_MARK = 64 * 1024 * 1024


class ConnectionState(IntEnum):
    DISCONNECTED = 0
    DISCONNECTING = 1
    CONNECTING = 2
    CONNECTED = 3


def _to_bytes(data: Union[str, bytes, bytearray, memoryview]) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8", "surrogateescape")
    return bytes(data)


class TcpConnection:
    """A connected socket, its buffers, and the callbacks for its events.

    Every method except ``send`` and ``shutdown`` must be called from the
    thread of the connection's loop; those two may be called from anywhere.
    """

    def __init__(
        self,
        loop: EventLoop,
        name: str,
        sock: socket.socket,
        local_addr: InetAddress,
        peer_addr: InetAddress,
    ) -> None:
        if loop is None:
            raise ValueError(f"TcpConnection {name!r} needs an event loop")
        self._loop = loop
        self._name = name
        self._state = ConnectionState.CONNECTING
        self._socket = Socket(sock)
        self._channel = Channel(loop, sock.fileno())
        self._local_addr = local_addr
        self._peer_addr = peer_addr
        self._input = Buffer()
        self._output = Buffer()
        self.high_water_mark = DEFAULT_HIGH_WATER_MARK
        self.connection_callback: Optional[ConnectionCallback] = None
        self.message_callback: Optional[MessageCallback] = None
        self.write_complete_callback: Optional[WriteCompleteCallback] = None
        self.high_water_mark_callback: Optional[HighWaterMarkCallback] = None
        self.close_callback: Optional[CloseCallback] = None

        self._channel.read_callback = self._handle_read
        self._channel.write_callback = self._handle_write
        self._channel.close_callback = self._handle_close
        self._channel.error_callback = self._handle_error
        log_info("TcpConnection::ctor[%s] at fd=%d", name, self._channel.fd)
        self._socket.set_keep_alive(True)

    def __repr__(self) -> str:
        return f"TcpConnection(name={self._name!r}, state={self._state.name})"

    @property
    def loop(self) -> EventLoop:
        return self._loop

    @property
    def name(self) -> str:
        return self._name

    @property
    def local_address(self) -> InetAddress:
        return self._local_addr

    @property
    def peer_address(self) -> InetAddress:
        return self._peer_addr

    @property
    def state(self) -> ConnectionState:
        return self._state

    @state.setter
    def state(self, value: ConnectionState) -> None:
        self._state = ConnectionState(value)

    @property
    def input_buffer(self) -> Buffer:
        return self._input

    @property
    def output_buffer(self) -> Buffer:
        return self._output

    def connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    def send(self, data: Union[str, bytes, bytearray, memoryview]) -> None:
        """Send data to the peer; ignored unless the connection is up."""
        if self._state != ConnectionState.CONNECTED:
            return
        payload = _to_bytes(data)
        if self._loop.is_in_loop_thread():
            self._send_in_loop(payload)
        else:
            self._loop.run_in_loop(functools.partial(self._send_in_loop, payload))

    def shutdown(self) -> None:
        """Close the writing half once all pending output has been sent."""
        if self._state == ConnectionState.CONNECTED:
            self._state = ConnectionState.DISCONNECTING
            self._loop.run_in_loop(self._shutdown_in_loop)

    def connect_established(self) -> None:
        self._state = ConnectionState.CONNECTED
        self._channel.tie(self)
        self._channel.enable_reading()
        if self.connection_callback is not None:
            self.connection_callback(self)

    def connect_destroyed(self) -> None:
        if self._state == ConnectionState.CONNECTED:
            self._state = ConnectionState.DISCONNECTED
            self._channel.disable_all()
            if self.connection_callback is not None:
                self.connection_callback(self)
        self._channel.remove()
        self._socket.close()

    def _shutdown_in_loop(self) -> None:
        if not self._channel.is_writing():
            self._socket.shutdown_write()

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            n = self._input.read_fd(self._socket.sock)
        except OSError as exc:
            log_error("TcpConnection::handleRead %s", exc)
            self._handle_error()
            return
        if n > 0:
            if self.message_callback is not None:
                self.message_callback(self, self._input, receive_time)
            else:
                self._input.retrieve_all()
        else:
            self._handle_close()

    def _handle_write(self) -> None:
        if not self._channel.is_writing():
            log_error("TcpConnection fd=%d is down, no more writing", self._channel.fd)
            return
        try:
            n = self._output.write_fd(self._socket.sock)
        except OSError as exc:
            log_error("TcpConnection::handleWrite %s", exc)
            return
        if n <= 0:
            log_error("TcpConnection::handleWrite wrote nothing")
            return
        self._output.retrieve(n)
        if self._output.readable_bytes() == 0:
            self._channel.disable_writing()
            if self.write_complete_callback is not None:
                self._loop.queue_in_loop(
                    functools.partial(self.write_complete_callback, self)
                )
            if self._state == ConnectionState.DISCONNECTING:
                self._shutdown_in_loop()

    def _handle_close(self) -> None:
        log_info(
            "TcpConnection::handleClose fd=%d state=%d", self._channel.fd, int(self._state)
        )
        self._state = ConnectionState.DISCONNECTED
        self._channel.disable_all()
        if self.connection_callback is not None:
            self.connection_callback(self)
        if self.close_callback is not None:
            self.close_callback(self)

    def _handle_error(self) -> None:
        try:
            err = self._socket.sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            err = exc.errno or 0
        log_error("TcpConnection::handleError name:%s - SO_ERROR:%d", self._name, err)

    def _send_in_loop(self, data: bytes) -> None:
        if self._state == ConnectionState.DISCONNECTED:
            log_error("disconnected, give up writing!")
            return
        nwrote = 0
        remaining = len(data)
        fault = False
        if not self._channel.is_writing() and self._output.readable_bytes() == 0:
            try:
                nwrote = self._socket.sock.send(data)
            except BlockingIOError:
                nwrote = 0
            except OSError as exc:
                nwrote = 0
                log_error("TcpConnection::sendInLoop %s", exc)
                if exc.errno in (errno.EPIPE, errno.ECONNRESET):
                    fault = True
            else:
                remaining = len(data) - nwrote
                if remaining == 0 and self.write_complete_callback is not None:
                    self._loop.queue_in_loop(
                        functools.partial(self.write_complete_callback, self)
                    )
        if fault or remaining <= 0:
            return
        old_len = self._output.readable_bytes()
        if (
            old_len + remaining >= self.high_water_mark
            and old_len < self.high_water_mark
            and self.high_water_mark_callback is not None
        ):
            self._loop.queue_in_loop(
                functools.partial(self.high_water_mark_callback, self, old_len + remaining)
            )
        self._output.append(data[nwrote:])
        if not self._channel.is_writing():
            self._channel.enable_writing()