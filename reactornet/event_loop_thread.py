"""Event loops running in their own threads, singly or as a round-robin pool."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from .event_loop import EventLoop
from .thread import Thread

ThreadInitCallback = Callable[[EventLoop], None]


class EventLoopThread:
    """A thread that owns and runs exactly one event loop."""

    def __init__(self, callback: Optional[ThreadInitCallback] = None, name: str = "") -> None:
        self._loop: Optional[EventLoop] = None
        self._exiting = False
        self._cond = threading.Condition()
        self._callback = callback
        self._thread = Thread(self._thread_func, name)

    def __enter__(self) -> EventLoopThread:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def name(self) -> str:
        return self._thread.name

    def start_loop(self) -> EventLoop:
        """Start the thread and return its loop once the loop exists."""
        self._thread.start()
        with self._cond:
            self._cond.wait_for(lambda: self._loop is not None)
            return self._loop

    def close(self) -> None:
        """Stop the loop and wait for its thread to finish."""
        self._exiting = True
        with self._cond:
            loop = self._loop
        if loop is not None:
            loop.quit()
            self._thread.join()

    def _thread_func(self) -> None:
        loop = EventLoop()
        try:
            if self._callback is not None:
                self._callback(loop)
            with self._cond:
                self._loop = loop
                self._cond.notify_all()
            loop.loop()
        finally:
            loop.close()
            with self._cond:
                self._loop = None


class EventLoopThreadPool:
    """A set of loop threads handed out round-robin; falls back to the base loop."""

    def __init__(self, base_loop: EventLoop, name: str) -> None:
        self._base_loop = base_loop
        self._name = name
        self._started = False
        self.num_threads = 0
        self._next = 0
        self._threads: list[EventLoopThread] = []
        self._loops: list[EventLoop] = []

    def __enter__(self) -> EventLoopThreadPool:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def started(self) -> bool:
        return self._started

    @property
    def name(self) -> str:
        return self._name

    def start(self, callback: Optional[ThreadInitCallback] = None) -> None:
        """Start ``num_threads`` loop threads, named ``<name><index>``."""
        self._started = True
        for index in range(self.num_threads):
            thread = EventLoopThread(callback, f"{self._name}{index}")
            self._threads.append(thread)
            self._loops.append(thread.start_loop())
        if self.num_threads == 0 and callback is not None:
            callback(self._base_loop)

    def get_next_loop(self) -> EventLoop:
        if not self._loops:
            return self._base_loop
        loop = self._loops[self._next]
        self._next = (self._next + 1) % len(self._loops)
        return loop

    def get_all_loops(self) -> list[EventLoop]:
        if not self._loops:
            return [self._base_loop]
        return list(self._loops)

    def close(self) -> None:
        """Stop every loop thread in the pool."""
        for thread in self._threads:
            thread.close()
        self._threads.clear()
        self._loops.clear()
        self._next = 0