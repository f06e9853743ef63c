"""Shared fixtures: a controllable location provider and a manual clock."""

import itertools

import pytest

from jt.tracking.config import TrackerConfig
from jt.tracking.provider import Permission, ProviderError
from jt.tracking.types import RawFix


class ManualClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = 0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FakeProvider:
    """In-memory LocationProvider that records every call."""

    def __init__(
        self,
        foreground=Permission.GRANTED,
        background=Permission.GRANTED,
        fail_foreground=False,
        fail_background=False,
    ):
        self.foreground = foreground
        self.background = background
        self.fail_foreground = fail_foreground
        self.fail_background = fail_background
        self.fg = {}
        self.bg = {}
        self.unsubscribed = []
        self.subscribe_calls = 0
        self._ids = itertools.count(1)

    async def request_foreground_permission(self):
        return self.foreground

    async def request_background_permission(self):
        return self.background

    async def subscribe(self, on_fix):
        self.subscribe_calls += 1
        if self.fail_foreground:
            raise ProviderError("location service unavailable")
        handle = next(self._ids)
        self.fg[handle] = on_fix
        return handle

    async def subscribe_background(self, on_batch):
        if self.fail_background:
            raise ProviderError("background service unavailable")
        handle = next(self._ids)
        self.bg[handle] = on_batch
        return handle

    async def unsubscribe(self, handle):
        self.unsubscribed.append(handle)
        self.fg.pop(handle, None)
        self.bg.pop(handle, None)

    @property
    def active(self):
        return len(self.fg) + len(self.bg)

    def emit(self, fix):
        for cb in list(self.fg.values()):
            cb(fix)

    def emit_batch(self, fixes):
        for cb in list(self.bg.values()):
            cb(fixes)


class RecordingNotifier:
    def __init__(self):
        self.warnings = []

    def warn(self, title, message):
        self.warnings.append((title, message))


def fix(lat, lon, t, acc=None, speed=None):
    return RawFix(latitude=lat, longitude=lon, timestamp=t, accuracy=acc, speed=speed)


@pytest.fixture
def cfg():
    return TrackerConfig()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def notifier():
    return RecordingNotifier()
