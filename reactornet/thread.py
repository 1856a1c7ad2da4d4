"""Threads that report their native id once started."""

from __future__ import annotations

import threading
from typing import Callable

_local = threading.local()


def current_tid() -> int:
    """Return the native id of the calling thread, cached per thread."""
    tid = getattr(_local, "tid", 0)
    if tid == 0:
        tid = threading.get_native_id()
        _local.tid = tid
    return tid


class Thread:
    """A named thread whose ``start`` returns only once its id is known."""

    _num_created = 0
    _count_lock = threading.Lock()

    def __init__(self, func: Callable[[], None], name: str = "") -> None:
        self._func = func
        self._started = False
        self._joined = False
        self._tid = 0
        self._thread: threading.Thread | None = None
        with Thread._count_lock:
            Thread._num_created += 1
            number = Thread._num_created
        self._name = name or f"Thread{number}"

    @property
    def started(self) -> bool:
        return self._started

    @property
    def tid(self) -> int:
        return self._tid

    @property
    def name(self) -> str:
        return self._name

    @classmethod
    def num_created(cls) -> int:
        return cls._num_created

    def start(self) -> None:
        if self._started:
            raise RuntimeError(f"thread {self._name} already started")
        self._started = True
        ready = threading.Event()

        def run() -> None:
            self._tid = current_tid()
            ready.set()
            self._func()

        self._thread = threading.Thread(target=run, name=self._name, daemon=True)
        self._thread.start()
        ready.wait()

    def join(self) -> None:
        if self._thread is None:
            raise RuntimeError(f"thread {self._name} was never started")
        self._joined = True
        self._thread.join()