"""A file descriptor, the events it is interested in, and their handlers."""

from __future__ import annotations

import weakref
from enum import IntFlag
from typing import Any, Callable, Optional

from .logger import log_info
from .timestamp import Timestamp

ReadEventCallback = Callable[[Timestamp], None]
EventCallback = Callable[[], None]

_INDEX_NEW = -1


class Events(IntFlag):
    """Readiness flags, with the bit values epoll uses."""

    NONE = 0
    IN = 0x001
    PRI = 0x002
    OUT = 0x004
    ERR = 0x008
    HUP = 0x010
    READ = IN | PRI
    WRITE = OUT


class Channel:
    """Binds a descriptor to its event interest and the callbacks for each event.

    The channel never touches the poller itself: interest changes go through
    the owning loop's ``update_channel`` and ``remove_channel``.
    """

    def __init__(self, loop: Any, fd: int) -> None:
        self._loop = loop
        self._fd = fd
        self.events = Events.NONE
        self.revents = Events.NONE
        self.index = _INDEX_NEW
        self._tie: Optional[weakref.ReferenceType] = None
        self.read_callback: Optional[ReadEventCallback] = None
        self.write_callback: Optional[EventCallback] = None
        self.close_callback: Optional[EventCallback] = None
        self.error_callback: Optional[EventCallback] = None

    @property
    def fd(self) -> int:
        return self._fd

    @property
    def owner_loop(self) -> Any:
        return self._loop

    def tie(self, obj: Any) -> None:
        """Only dispatch events while ``obj`` is still alive."""
        self._tie = weakref.ref(obj)

    def handle_event(self, receive_time: Timestamp) -> None:
        if self._tie is not None:
            guard = self._tie()
            if guard is None:
                return
            self._handle_event_with_guard(receive_time)
        else:
            self._handle_event_with_guard(receive_time)

    def enable_reading(self) -> None:
        self.events |= Events.READ
        self._update()

    def disable_reading(self) -> None:
        self.events &= ~Events.READ
        self._update()

    def enable_writing(self) -> None:
        self.events |= Events.WRITE
        self._update()

    def disable_writing(self) -> None:
        self.events &= ~Events.WRITE
        self._update()

    def disable_all(self) -> None:
        self.events = Events.NONE
        self._update()

    def is_writing(self) -> bool:
        return bool(self.events & Events.WRITE)

    def is_reading(self) -> bool:
        return bool(self.events & Events.READ)

    def is_none_event(self) -> bool:
        return self.events == Events.NONE

    def remove(self) -> None:
        self._loop.remove_channel(self)

    def _update(self) -> None:
        self._loop.update_channel(self)

    def _handle_event_with_guard(self, receive_time: Timestamp) -> None:
        revents = Events(self.revents)
        log_info("channel handleEvent revents:%d", int(revents))
        if (revents & Events.HUP) and not (revents & Events.IN):
            if self.close_callback:
                self.close_callback()
        if revents & Events.ERR:
            if self.error_callback:
                self.error_callback()
        if revents & (Events.IN | Events.PRI):
            if self.read_callback:
                self.read_callback(receive_time)
        if revents & Events.OUT:
            if self.write_callback:
                self.write_callback()