"""One event loop per thread: poll channels, dispatch events, run queued work."""

from __future__ import annotations

import socket
import threading
from typing import Callable

from .channel import Channel
from .logger import log_debug, log_error, log_info
from .poller import new_default_poller
from .thread import current_tid
from .timestamp import Timestamp

K_POLL_TIME_MS = 10000

Functor = Callable[[], None]

_loops_lock = threading.Lock()
_loops_by_thread: dict[int, "EventLoop"] = {}


class EventLoop:
    """Runs in the thread that creates it; at most one per thread."""

    def __init__(self) -> None:
        self._thread_id = current_tid()
        with _loops_lock:
            existing = _loops_by_thread.get(self._thread_id)
            if existing is not None:
                log_error(
                    "Another EventLoop %#x exists in this thread %d",
                    id(existing), self._thread_id,
                )
                raise RuntimeError(
                    f"another EventLoop already exists in thread {self._thread_id}"
                )
            _loops_by_thread[self._thread_id] = self
        log_debug("EventLoop created %#x in thread %d", id(self), self._thread_id)
        self._looping = False
        self._quit = False
        self._calling_pending = False
        self._closed = False
        self._poll_return_time = Timestamp()
        self._pending: list[Functor] = []
        self._lock = threading.Lock()
        self._poller = new_default_poller(self)
        self._wakeup_reader, self._wakeup_writer = socket.socketpair()
        self._wakeup_reader.setblocking(False)
        self._wakeup_writer.setblocking(False)
        self._wakeup_channel = Channel(self, self._wakeup_reader.fileno())
        self._wakeup_channel.read_callback = self._handle_read
        self._wakeup_channel.enable_reading()

    def __enter__(self) -> EventLoop:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def poll_return_time(self) -> Timestamp:
        return self._poll_return_time

    @property
    def looping(self) -> bool:
        return self._looping

    def is_in_loop_thread(self) -> bool:
        return self._thread_id == current_tid()

    def loop(self) -> None:
        """Run until ``quit`` is called."""
        if self._closed:
            raise RuntimeError("EventLoop is closed")
        self._looping = True
        self._quit = False
        log_info("EventLoop %#x start looping", id(self))
        try:
            while not self._quit:
                self._poll_return_time, active = self._poller.poll(K_POLL_TIME_MS)
                for channel in active:
                    channel.handle_event(self._poll_return_time)
                self._do_pending_functors()
        finally:
            log_info("EventLoop %#x stop looping", id(self))
            self._looping = False

    def quit(self) -> None:
        self._quit = True
        if not self.is_in_loop_thread():
            self.wakeup()

    def run_in_loop(self, cb: Functor) -> None:
        """Run ``cb`` now if called from the loop's thread, else queue it."""
        if self.is_in_loop_thread():
            cb()
        else:
            self.queue_in_loop(cb)

    def queue_in_loop(self, cb: Functor) -> None:
        with self._lock:
            self._pending.append(cb)
        if not self.is_in_loop_thread() or self._calling_pending:
            self.wakeup()

    def wakeup(self) -> None:
        try:
            self._wakeup_writer.send(b"\x01")
        except BlockingIOError:
            # The pipe is full, so a wake-up is already pending.
            pass
        except OSError as exc:
            log_error("EventLoop.wakeup() failed: %s", exc)

    def update_channel(self, channel: Channel) -> None:
        self._poller.update_channel(channel)

    def remove_channel(self, channel: Channel) -> None:
        self._poller.remove_channel(channel)

    def has_channel(self, channel: Channel) -> bool:
        return self._poller.has_channel(channel)

    def close(self) -> None:
        """Release the wake-up channel and poller; the thread may then create a new loop."""
        if self._closed:
            return
        self._closed = True
        self._wakeup_channel.disable_all()
        self._wakeup_channel.remove()
        self._wakeup_reader.close()
        self._wakeup_writer.close()
        self._poller.close()
        with _loops_lock:
            if _loops_by_thread.get(self._thread_id) is self:
                del _loops_by_thread[self._thread_id]

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            data = self._wakeup_reader.recv(4096)
        except BlockingIOError:
            return
        except OSError as exc:
            log_error("EventLoop.handle_read() failed: %s", exc)
            return
        if not data:
            log_error("EventLoop.handle_read() read 0 bytes")

    def _do_pending_functors(self) -> None:
        self._calling_pending = True
        try:
            with self._lock:
                functors, self._pending = self._pending, []
            for functor in functors:
                functor()
        finally:
            self._calling_pending = False