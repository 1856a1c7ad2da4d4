import socket
import threading

import pytest

from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress
from reactornet.tcp_connection import ConnectionState, TcpConnection


@pytest.fixture
def loop():
    ev = EventLoop()
    yield ev
    ev.close()


@pytest.fixture
def pair():
    listener = socket.create_server(("127.0.0.1", 0))
    client = socket.create_connection(listener.getsockname(), timeout=5)
    server_side, _ = listener.accept()
    listener.close()
    server_side.setblocking(False)
    yield server_side, client
    client.close()
    server_side.close()


def _make(loop, sock):
    return TcpConnection(
        loop,
        "conn#1",
        sock,
        InetAddress.from_sockaddr(sock.getsockname()),
        InetAddress.from_sockaddr(sock.getpeername()),
    )


def _drain(loop):
    loop.queue_in_loop(loop.quit)
    loop.wakeup()
    loop.loop()


def _run_until_quit(loop, timeout=5.0):
    timer = threading.Timer(timeout, loop.quit)
    timer.start()
    try:
        loop.loop()
    finally:
        timer.cancel()


def test_none_loop_rejected(pair):
    server_side, _ = pair
    with pytest.raises(ValueError):
        TcpConnection(None, "x", server_side, InetAddress(), InetAddress())


def test_connect_established_reports_up(loop, pair):
    server_side, _ = pair
    conn = _make(loop, server_side)
    assert conn.state == ConnectionState.CONNECTING
    seen = []
    conn.connection_callback = lambda c: seen.append((c, c.connected()))
    conn.connect_established()
    assert seen == [(conn, True)]
    assert conn.state == ConnectionState.CONNECTED
    assert loop.has_channel is not None and conn.connected()
    conn.connect_destroyed()


def test_addresses_match_socket(loop, pair):
    server_side, client = pair
    conn = _make(loop, server_side)
    assert conn.peer_address.to_port() == client.getsockname()[1]
    assert conn.local_address.to_port() == client.getpeername()[1]
    assert conn.name == "conn#1"
    conn.connect_destroyed()


def test_send_in_loop_thread_and_write_complete(loop, pair):
    server_side, client = pair
    conn = _make(loop, server_side)
    completed = []
    conn.write_complete_callback = completed.append
    conn.connect_established()
    conn.send(b"hello")
    assert completed == []
    _drain(loop)
    assert completed == [conn]
    assert client.recv(16) == b"hello"
    conn.connect_destroyed()


def test_send_text_is_encoded(loop, pair):
    server_side, client = pair
    conn = _make(loop, server_side)
    conn.connect_established()
    conn.send("héllo")
    assert conn.output_buffer.readable_bytes() == 0
    assert client.recv(16) == "héllo".encode("utf-8")
    conn.connect_destroyed()


def test_send_from_other_thread_is_queued(loop, pair):
    server_side, client = pair
    conn = _make(loop, server_side)
    conn.connect_established()
    sender = threading.Thread(target=conn.send, args=(b"payload",))
    sender.start()
    sender.join()
    _drain(loop)
    assert conn.connected() is True
    assert conn.output_buffer.readable_bytes() == 0
    assert client.recv(16) == b"payload"
    conn.connect_destroyed()


def test_send_before_established_is_ignored(loop, pair):
    server_side, client = pair
    conn = _make(loop, server_side)
    conn.send(b"x")
    client.setblocking(False)
    with pytest.raises(BlockingIOError):
        client.recv(1)
    assert conn.output_buffer.readable_bytes() == 0
    conn.connect_destroyed()


def test_message_callback_receives_data(loop, pair):
    server_side, client = pair
    conn = _make(loop, server_side)
    received = []

    def on_message(c, buf, when):
        received.append((c, buf.retrieve_all_as_string(), when.micro_seconds_since_epoch > 0))
        loop.quit()

    conn.message_callback = on_message
    conn.connect_established()
    client.sendall(b"ping")
    _run_until_quit(loop)
    assert received == [(conn, "ping", True)]
    assert conn.input_buffer.readable_bytes() == 0
    conn.connect_destroyed()


def test_peer_close_triggers_close_handling(loop, pair):
    server_side, client = pair
    conn = _make(loop, server_side)
    states = []
    closed = []
    conn.connection_callback = lambda c: states.append(c.connected())

    def on_close(c):
        closed.append(c)
        loop.quit()

    conn.close_callback = on_close
    conn.connect_established()
    client.close()
    _run_until_quit(loop)
    assert states == [True, False]
    assert closed == [conn]
    assert conn.state == ConnectionState.DISCONNECTED
    conn.connect_destroyed()
    assert states == [True, False]


def test_shutdown_closes_write_half(loop, pair):
    server_side, client = pair
    conn = _make(loop, server_side)
    conn.connect_established()
    conn.shutdown()
    assert conn.state == ConnectionState.DISCONNECTING
    assert client.recv(16) == b""
    conn.connect_destroyed()


def test_connect_destroyed_reports_down_and_closes(loop, pair):
    server_side, client = pair
    conn = _make(loop, server_side)
    states = []
    conn.connection_callback = lambda c: states.append(c.connected())
    conn.connect_established()
    conn.connect_destroyed()
    assert states == [True, False]
    assert conn.state == ConnectionState.DISCONNECTED
    assert client.recv(16) == b""


def test_send_after_disconnect_is_ignored(loop, pair):
    server_side, client = pair
    conn = _make(loop, server_side)
    conn.connect_established()
    conn.state = ConnectionState.DISCONNECTED
    conn.send(b"late")
    assert conn.connected() is False
    assert conn.output_buffer.readable_bytes() == 0
    client.setblocking(False)
    with pytest.raises(BlockingIOError):
        client.recv(1)
    conn.connect_destroyed()


def test_high_water_mark_callback(loop, pair):
    server_side, _ = pair
    conn = _make(loop, server_side)
    conn.high_water_mark = 1024
    marks = []
    conn.high_water_mark_callback = lambda c, size: marks.append((c, size))
    conn.connect_established()
    data = b"\0" * (32 * 1024 * 1024)
    conn.send(data)
    buffered = conn.output_buffer.readable_bytes()
    assert 1024 <= buffered <= len(data)
    _drain(loop)
    assert marks == [(conn, buffered)]
    conn.connect_destroyed()