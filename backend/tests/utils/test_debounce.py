"""Tests for the asyncio debouncer."""

import asyncio

import pytest

from flowcanvas.utils.debounce import Debouncer


class Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def __call__(self, *args, **kwargs) -> None:
        self.calls.append((args, kwargs))


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


class TestWithoutEventLoop:
    """Calls made outside a running loop wait for flush."""

    def test_call_stays_pending(self, recorder) -> None:
        debouncer = Debouncer(0.01, recorder)
        debouncer.call("a")
        assert debouncer.pending is True
        assert recorder.calls == []

    def test_flush_runs_last_call(self, recorder) -> None:
        debouncer = Debouncer(0.01, recorder)
        debouncer.call("a")
        debouncer.call("b", label="x")

        assert debouncer.flush() is True
        assert recorder.calls == [(("b",), {"label": "x"})]
        assert debouncer.pending is False
        assert debouncer.flush() is False

    def test_cancel(self, recorder) -> None:
        debouncer = Debouncer(0.01, recorder)
        debouncer.call("a")
        debouncer.cancel()
        assert debouncer.pending is False
        assert debouncer.flush() is False
        assert recorder.calls == []


class TestWithEventLoop:
    """Calls made inside a running loop fire after the quiet period."""

    @pytest.mark.asyncio
    async def test_only_last_call_fires(self, recorder) -> None:
        debouncer = Debouncer(0.05, recorder)
        for value in range(5):
            debouncer.call(value)
            await asyncio.sleep(0.01)
        assert recorder.calls == []

        await asyncio.sleep(0.15)
        assert recorder.calls == [((4,), {})]
        assert debouncer.pending is False

    @pytest.mark.asyncio
    async def test_flush_cancels_timer(self, recorder) -> None:
        debouncer = Debouncer(0.05, recorder)
        debouncer.call("now")
        debouncer.flush()

        await asyncio.sleep(0.1)
        assert recorder.calls == [(("now",), {})]

    @pytest.mark.asyncio
    async def test_cancel_prevents_firing(self, recorder) -> None:
        debouncer = Debouncer(0.05, recorder)
        debouncer.call("never")
        debouncer.cancel()

        await asyncio.sleep(0.1)
        assert recorder.calls == []
