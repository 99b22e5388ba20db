"""Tests for bot/timers.py – one-shot, repeating, cancellation, closed scopes."""

import asyncio

import pytest

from bot.timers import TimerScope


class TestTimerScope:

    def test_call_later_runs_once(self, fake_loop):
        scope = TimerScope(fake_loop)
        calls = []
        scope.call_later(0.5, calls.append, "x")
        fake_loop.advance(0.4)
        assert calls == []
        fake_loop.advance(0.1)
        assert calls == ["x"]
        fake_loop.advance(10)
        assert calls == ["x"]
        assert scope.active == 0

    def test_call_every_repeats(self, fake_loop):
        scope = TimerScope(fake_loop)
        ticks = []
        scope.call_every(1.0, lambda: ticks.append(fake_loop.now))
        fake_loop.advance(3.5)
        assert ticks == [1.0, 2.0, 3.0]
        assert scope.active == 1

    def test_cancel_single_timer(self, fake_loop):
        scope = TimerScope(fake_loop)
        ticks = []
        timer = scope.call_every(1.0, ticks.append, 1)
        fake_loop.advance(1.0)
        timer.cancel()
        fake_loop.advance(5.0)
        assert ticks == [1]
        assert scope.active == 0

    def test_close_cancels_everything(self, fake_loop):
        scope = TimerScope(fake_loop)
        calls = []
        scope.call_later(1.0, calls.append, "once")
        scope.call_every(0.5, calls.append, "tick")
        scope.close()
        fake_loop.advance(10)
        assert calls == []
        assert fake_loop.pending == []

    @pytest.mark.parametrize("interval", [0, -1.0])
    def test_call_every_rejects_non_positive_interval(self, fake_loop, interval):
        scope = TimerScope(fake_loop)
        with pytest.raises(ValueError, match="greater than zero"):
            scope.call_every(interval, lambda: None)
        assert fake_loop.pending == []
        assert scope.active == 0

    def test_closed_scope_refuses_new_timers(self, fake_loop):
        scope = TimerScope(fake_loop)
        scope.close()
        assert scope.call_later(1.0, lambda: None) is None
        assert scope.call_every(1.0, lambda: None) is None
        assert fake_loop.pending == []

    def test_failing_tick_keeps_repeating(self, fake_loop, caplog):
        scope = TimerScope(fake_loop)
        ticks = []

        def flaky():
            ticks.append(fake_loop.now)
            raise RuntimeError("boom")

        scope.call_every(1.0, flaky)
        fake_loop.advance(2.0)
        assert ticks == [1.0, 2.0]
        assert "timer:error" in caplog.text


@pytest.mark.asyncio
async def test_scope_on_real_loop():
    scope = TimerScope(asyncio.get_running_loop(), name="real")
    ticks = []
    scope.call_every(0.01, ticks.append, 1)
    await asyncio.sleep(0.055)
    scope.close()
    seen = len(ticks)
    await asyncio.sleep(0.03)
    assert seen >= 2
    assert len(ticks) == seen
