"""Shared fixtures for buffered metrics tests."""
import pytest

from bufferedmetrics.aggregator import Aggregator
from bufferedmetrics.reporters import Reporter


class RecordingReporter(Reporter):
    """Reporter that keeps every batch and succeeds or fails on demand."""

    def __init__(self, fail_with=None):
        self.batches = []
        self.fail_with = fail_with

    def report(self, series, on_success=None, on_error=None):
        self.batches.append(series)
        if self.fail_with is not None:
            if on_error is not None:
                on_error(self.fail_with, "rejected", 500)
        elif on_success is not None:
            on_success()


class CountingAggregator(Aggregator):
    """Aggregator that counts how often it was flushed."""

    def __init__(self, default_tags=None):
        super().__init__(default_tags)
        self.flush_count = 0

    def flush(self):
        self.flush_count += 1
        return super().flush()


class FakeTimer:
    """Stand-in for threading.Timer that only fires when told to."""

    instances = []

    def __init__(self, interval, function, args=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args)


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def fake_timer(monkeypatch):
    FakeTimer.instances = []
    monkeypatch.setattr("bufferedmetrics.logger.threading.Timer", FakeTimer)
    return FakeTimer
