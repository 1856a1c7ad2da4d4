"""I/O multiplexing: watch channels and report the ones that are ready."""

from __future__ import annotations

import os
import selectors
from abc import ABC, abstractmethod
from typing import Any, Optional

from .channel import Channel, Events
from .logger import log_debug, log_error, log_info
from .timestamp import Timestamp

K_NEW = -1
K_ADDED = 1
K_DELETED = 2

_ADD = "add"
_MOD = "mod"
_DEL = "del"


class Poller(ABC):
    """Base class for multiplexers owned by one event loop."""

    def __init__(self, loop: Any) -> None:
        self.owner_loop = loop
        self._channels: dict[int, Channel] = {}

    @abstractmethod
    def poll(self, timeout_ms: int) -> tuple[Timestamp, list[Channel]]:
        """Wait for events; return the wake-up time and the active channels."""

    @abstractmethod
    def update_channel(self, channel: Channel) -> None:
        """Register or change the channel's interest."""

    @abstractmethod
    def remove_channel(self, channel: Channel) -> None:
        """Forget the channel entirely."""

    def has_channel(self, channel: Channel) -> bool:
        return self._channels.get(channel.fd) is channel


def _selector_mask(events: Events) -> int:
    mask = 0
    if events & Events.READ:
        mask |= selectors.EVENT_READ
    if events & Events.WRITE:
        mask |= selectors.EVENT_WRITE
    return mask


def _events_from_mask(mask: int) -> Events:
    revents = Events.NONE
    if mask & selectors.EVENT_READ:
        revents |= Events.IN
    if mask & selectors.EVENT_WRITE:
        revents |= Events.OUT
    return revents


class SelectorPoller(Poller):
    """Poller backed by a ``selectors`` selector (epoll where available)."""

    def __init__(self, loop: Any, selector: Optional[selectors.BaseSelector] = None) -> None:
        super().__init__(loop)
        self._selector = selector if selector is not None else selectors.DefaultSelector()

    def poll(self, timeout_ms: int) -> tuple[Timestamp, list[Channel]]:
        log_info("func=poll => fd total count:%d", len(self._channels))
        timeout = None if timeout_ms < 0 else timeout_ms / 1000
        try:
            ready = self._selector.select(timeout)
        except OSError as exc:
            ready = []
            log_error("SelectorPoller.poll() err: %s", exc)
        now = Timestamp.now()
        active: list[Channel] = []
        if ready:
            log_info("%d events happened", len(ready))
            for key, mask in ready:
                channel = key.data
                channel.revents = _events_from_mask(mask)
                active.append(channel)
        else:
            log_debug("poll timeout!")
        return now, active

    def update_channel(self, channel: Channel) -> None:
        index = channel.index
        log_info(
            "func=update_channel => fd=%d events=%d index=%d",
            channel.fd, int(channel.events), index,
        )
        if index in (K_NEW, K_DELETED):
            if index == K_NEW:
                self._channels[channel.fd] = channel
            channel.index = K_ADDED
            self._update(_ADD, channel)
        elif channel.is_none_event():
            self._update(_DEL, channel)
            channel.index = K_DELETED
        else:
            self._update(_MOD, channel)

    def remove_channel(self, channel: Channel) -> None:
        fd = channel.fd
        self._channels.pop(fd, None)
        log_info("func=remove_channel => fd=%d", fd)
        if channel.index == K_ADDED:
            self._update(_DEL, channel)
        channel.index = K_NEW

    def close(self) -> None:
        self._selector.close()
        self._channels.clear()

    def _registered(self, fd: int) -> bool:
        try:
            self._selector.get_key(fd)
        except (KeyError, ValueError):
            return False
        return True

    def _update(self, operation: str, channel: Channel) -> None:
        fd = channel.fd
        mask = 0 if operation == _DEL else _selector_mask(channel.events)
        try:
            registered = self._registered(fd)
            if mask == 0:
                if registered:
                    self._selector.unregister(fd)
            elif registered:
                self._selector.modify(fd, mask, channel)
            else:
                self._selector.register(fd, mask, channel)
        except (OSError, ValueError, KeyError) as exc:
            if operation == _DEL:
                log_error("selector del error:%s", exc)
            else:
                log_error("selector add/mod error:%s", exc)
                raise


def new_default_poller(loop: Any) -> Poller:
    """Create the poller an event loop uses.

    Setting ``REACTORNET_USE_POLL`` selects ``poll(2)`` where the platform has it.
    """
    if os.environ.get("REACTORNET_USE_POLL") and hasattr(selectors, "PollSelector"):
        return SelectorPoller(loop, selectors.PollSelector())
    return SelectorPoller(loop)