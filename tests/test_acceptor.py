import socket
import threading

import pytest

from reactornet.acceptor import Acceptor
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress


@pytest.fixture
def loop():
    event_loop = EventLoop()
    yield event_loop
    event_loop.close()


@pytest.fixture
def acceptor(loop):
    acc = Acceptor(loop, InetAddress(0), False)
    yield acc
    acc.close()


def _run_loop(loop):
    guard = threading.Timer(5, loop.quit)
    guard.start()
    try:
        loop.loop()
    finally:
        guard.cancel()


def test_not_listening_until_listen(acceptor):
    assert acceptor.listening is False
    acceptor.listen()
    assert acceptor.listening is True


def test_binds_to_requested_ip(acceptor):
    assert acceptor.address.to_ip() == "127.0.0.1"
    assert acceptor.address.to_port() > 0


def test_new_connection_callback_receives_connection(loop, acceptor):
    received = []

    def on_connection(conn, peer):
        received.append((conn, peer))
        loop.quit()

    acceptor.new_connection_callback = on_connection
    acceptor.listen()
    port = acceptor.address.to_port()
    with socket.create_connection(("127.0.0.1", port), timeout=5) as client:
        _run_loop(loop)
        assert len(received) == 1
        conn, peer = received[0]
        try:
            assert peer.to_port() == client.getsockname()[1]
            assert conn.getblocking() is False
            assert conn.getpeername() == client.getsockname()
        finally:
            conn.close()


def test_connection_closed_without_callback(loop, acceptor):
    acceptor.listen()
    port = acceptor.address.to_port()
    with socket.create_connection(("127.0.0.1", port), timeout=5) as client:
        loop.queue_in_loop(loop.quit)
        _run_loop(loop)
        assert client.recv(16) == b""


def test_close_stops_accepting(loop):
    acc = Acceptor(loop, InetAddress(0), False)
    acc.listen()
    port = acc.address.to_port()
    acc.close()
    with pytest.raises(ConnectionRefusedError):
        socket.create_connection(("127.0.0.1", port), timeout=5)


def test_bind_conflict_is_fatal(loop, acceptor):
    acceptor.listen()
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupant:
        occupant.bind(("127.0.0.1", 0))
        occupant.listen()
        port = occupant.getsockname()[1]
        with pytest.raises(SystemExit):
            Acceptor(loop, InetAddress(port), False)