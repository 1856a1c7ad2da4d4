# reactornet

`reactornet` is a small TCP networking library built on the reactor pattern.
A main event loop accepts connections and hands each new connection, in
round-robin order, to one of a pool of sub-loops. Each sub-loop runs in its own
thread ("one loop per thread"). All I/O is non-blocking and is driven by the
standard library's `selectors`. The library has no dependencies outside the
standard library.

## Modules

- `reactornet.timestamp`
  - `Timestamp` holds microseconds since the epoch.
  - `Timestamp.now()` returns the current time.
  - `to_string()` formats the local time as `YYYY/MM/DD hh:mm:ss`.
- `reactornet.logger`
  - `Logger` is a process-wide singleton, also reached through `Logger.instance()`.
  - `LogLevel` names the levels.
  - `log_info`, `log_error`, `log_fatal` and `log_debug` take printf-style
    arguments and write `[LEVEL]time:message` lines to standard output.
    Messages are cut to 1023 characters.
  - `log_fatal` logs the message and then calls `sys.exit(-1)`.
  - `log_debug` writes only if `REACTORNET_DEBUG=1` was set in the environment
    when the module was imported.
- `reactornet.inet_address`
  - `InetAddress(port=0, ip="127.0.0.1")` is a frozen IPv4 address.
  - It provides `to_ip()`, `to_port()`, `to_ip_port()` (for example
    `"127.0.0.1:8000"`), `sockaddr()` and `InetAddress.from_sockaddr((host, port))`.
  - An address that cannot be parsed becomes `255.255.255.255`.
  - A port outside 0–65535 raises `ValueError`.
- `reactornet.buffer`
  - `Buffer` is a growable byte buffer with an 8-byte prepend area, a readable
    region and a writable region.
  - Its methods are `append` (bytes or text), `peek`, `retrieve`,
    `retrieve_all`, `retrieve_as_string`, `retrieve_all_as_string`,
    `readable_bytes`, `writable_bytes`, `prependable_bytes` and
    `ensure_writable_bytes`.
  - `read_fd` and `write_fd` read from or write to a socket or a raw file
    descriptor.
  - Text is encoded and decoded as UTF-8 with `surrogateescape`.
- `reactornet.thread`
  - `Thread(func, name="")` is a named thread whose `start()` returns only once
    the new thread's native id is known.
  - Threads without a name are called `Thread<n>`.
  - `current_tid()` returns the calling thread's native id.
- `reactornet.channel`
  - `Channel` binds a file descriptor to its event interest (`Events`) and to
    the `read_callback`, `write_callback`, `close_callback` and
    `error_callback` attributes.
  - `tie(obj)` makes it dispatch events only while `obj` is alive.
- `reactornet.poller`
  - `Poller` is the abstract base.
  - `SelectorPoller` is backed by `selectors.DefaultSelector()`.
  - `new_default_poller(loop)` picks the implementation. If
    `REACTORNET_USE_POLL` is set and the platform has `poll(2)`, it uses
    `selectors.PollSelector`.
- `reactornet.event_loop`
  - `EventLoop` polls its channels, dispatches the ready ones, and runs
    functions passed to `run_in_loop` / `queue_in_loop` from any thread.
  - `quit()` stops it from any thread.
  - `close()` releases it; it can also be used as a context manager.
  - Only one `EventLoop` may exist per thread. Creating a second one raises
    `RuntimeError`.
- `reactornet.event_loop_thread`
  - `EventLoopThread` runs one loop in its own thread. `start_loop()` returns
    that loop.
  - `EventLoopThreadPool(base_loop, name)` starts `num_threads` such threads,
    named `<name><index>`.
  - `get_next_loop()` hands out the pool's loops round-robin, or the base loop
    if the pool has no threads.
- `reactornet.sockets`
  - `Socket` owns a socket and sets its options: `set_tcp_no_delay`,
    `set_reuse_addr`, `set_reuse_port`, `set_keep_alive`.
  - It also binds, listens, accepts and shuts down the write side.
  - `create_nonblocking()` makes a non-blocking IPv4 TCP socket.
- `reactornet.acceptor`
  - `Acceptor` listens in the main loop and passes each accepted socket and
    its peer address to `new_connection_callback`.
  - If no callback is set, the accepted socket is closed at once.
- `reactornet.tcp_connection`
  - `TcpConnection` is an established connection with input and output
    buffers.
  - Its methods are `send` (text or bytes, from any thread), `shutdown`,
    `connected()`, and the states in `ConnectionState`.
  - Output that cannot be written at once is buffered. `high_water_mark` and
    `high_water_mark_callback` report when the buffered output grows past the
    mark (64 MiB by default).
- `reactornet.tcp_server`
  - `TcpServer(loop, listen_addr, name, option=Option.NO_REUSE_PORT)` ties
    everything together.

## An echo server

```python
from reactornet.event_loop import EventLoop
from reactornet.inet_address import InetAddress
from reactornet.logger import log_info
from reactornet.tcp_server import TcpServer


def on_connection(conn):
    state = "UP" if conn.connected() else "DOWN"
    log_info("Connection %s : %s", state, conn.peer_address.to_ip_port())


def on_message(conn, buf, when):
    conn.send(buf.retrieve_all_as_string())
    conn.shutdown()


loop = EventLoop()
server = TcpServer(loop, InetAddress(8000), "EchoServer-01")
server.connection_callback = on_connection
server.message_callback = on_message
server.set_thread_num(3)
server.start()
loop.loop()
```

Set the callback attributes before calling `start()`. They are:

- `connection_callback`
- `message_callback`
- `write_complete_callback`
- `thread_init_callback`

Each new connection receives them.

The connection callback runs once when a connection comes up and once when it
goes down. Use `connected()` to tell which. The message callback receives the
connection, its input `Buffer` and the `Timestamp` of the read.

Connections are named `<server name>-<ip:port>#<n>`. Calling `start()` more
than once does nothing. `server.address` gives the address actually bound,
which is useful when listening on port 0. `server.close()` destroys the open
connections, stops the I/O threads and closes the listening socket.

## What it does not do

- `reactornet` is a library only; it installs no command.
- It handles IPv4 only.
- It has no timers and no client-side connector. Outgoing connections are not
  provided.