import gc

import pytest

from reactornet.channel import Channel, Events
from reactornet.timestamp import Timestamp


class RecordingLoop:
    def __init__(self):
        self.updates = []
        self.removed = []

    def update_channel(self, channel):
        self.updates.append(channel.events)

    def remove_channel(self, channel):
        self.removed.append(channel)


class Owner:
    pass


@pytest.fixture
def loop():
    return RecordingLoop()


def test_new_channel_has_no_interest(loop):
    ch = Channel(loop, 5)
    assert ch.fd == 5
    assert ch.is_none_event()
    assert not ch.is_reading()
    assert not ch.is_writing()
    assert ch.owner_loop is loop


def test_enable_reading_updates_loop(loop):
    ch = Channel(loop, 3)
    ch.enable_reading()
    assert ch.is_reading()
    assert not ch.is_writing()
    assert loop.updates == [Events.READ]


def test_enable_and_disable_writing(loop):
    ch = Channel(loop, 3)
    ch.enable_reading()
    ch.enable_writing()
    assert ch.is_writing() and ch.is_reading()
    ch.disable_writing()
    assert not ch.is_writing()
    assert ch.is_reading()
    assert loop.updates[-1] == Events.READ
    assert len(loop.updates) == 3


def test_disable_reading_keeps_writing(loop):
    ch = Channel(loop, 3)
    ch.enable_reading()
    ch.enable_writing()
    ch.disable_reading()
    assert ch.events == Events.WRITE


def test_disable_all(loop):
    ch = Channel(loop, 3)
    ch.enable_reading()
    ch.enable_writing()
    ch.disable_all()
    assert ch.is_none_event()
    assert loop.updates[-1] == Events.NONE


def test_remove_goes_through_loop(loop):
    ch = Channel(loop, 3)
    ch.remove()
    assert loop.removed == [ch]


def test_read_event_passes_receive_time(loop):
    ch = Channel(loop, 3)
    got = []
    ch.read_callback = got.append
    when = Timestamp.now()
    ch.revents = Events.IN
    ch.handle_event(when)
    assert got == [when]


def test_priority_data_counts_as_read(loop):
    ch = Channel(loop, 3)
    got = []
    ch.read_callback = got.append
    ch.revents = Events.PRI
    ch.handle_event(Timestamp(7))
    assert got == [Timestamp(7)]


def test_hangup_without_input_closes(loop):
    ch = Channel(loop, 3)
    calls = []
    ch.close_callback = lambda: calls.append("close")
    ch.read_callback = lambda t: calls.append("read")
    ch.revents = Events.HUP
    ch.handle_event(Timestamp())
    assert calls == ["close"]


def test_hangup_with_input_reads_instead(loop):
    ch = Channel(loop, 3)
    calls = []
    ch.close_callback = lambda: calls.append("close")
    ch.read_callback = lambda t: calls.append("read")
    ch.revents = Events.HUP | Events.IN
    ch.handle_event(Timestamp())
    assert calls == ["read"]


def test_dispatch_order_error_read_write(loop):
    ch = Channel(loop, 3)
    calls = []
    ch.error_callback = lambda: calls.append("error")
    ch.read_callback = lambda t: calls.append("read")
    ch.write_callback = lambda: calls.append("write")
    ch.revents = Events.ERR | Events.IN | Events.OUT
    ch.handle_event(Timestamp())
    assert calls == ["error", "read", "write"]


def test_missing_callbacks_are_skipped(loop):
    ch = Channel(loop, 3)
    calls = []
    ch.write_callback = lambda: calls.append("write")
    ch.revents = Events.IN | Events.OUT | Events.ERR
    ch.handle_event(Timestamp())
    assert calls == ["write"]


def test_tied_channel_dispatches_while_owner_lives(loop):
    ch = Channel(loop, 3)
    owner = Owner()
    ch.tie(owner)
    calls = []
    ch.write_callback = lambda: calls.append("write")
    ch.revents = Events.OUT
    ch.handle_event(Timestamp())
    assert calls == ["write"]


def test_tied_channel_ignores_events_after_owner_dies(loop):
    ch = Channel(loop, 3)
    owner = Owner()
    ch.tie(owner)
    calls = []
    ch.write_callback = lambda: calls.append("write")
    del owner
    gc.collect()
    ch.revents = Events.OUT
    ch.handle_event(Timestamp())
    assert calls == []