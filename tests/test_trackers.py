import math
import random

import pytest

from blinkmeter.trackers import CLOSED, IDLE, OPEN, RUNNING, BlinkTracker, SessionTimer

T = 0.23


def feed(tracker, ratios):
    return [tracker.update(r) for r in ratios]


def count_runs_below(ratios, threshold):
    runs = 0
    below = False
    for r in ratios:
        if r < threshold and not below:
            runs += 1
        below = r < threshold
    return runs


class TestBlinkTracker:

    def test_scenario_two_drops(self):
        tracker = BlinkTracker(T)
        detected = feed(tracker, [0.3, 0.1, 0.1, 0.3, 0.1])
        assert tracker.counter == 2
        assert detected == [False, True, False, False, True]

    def test_never_below_threshold(self):
        tracker = BlinkTracker(T)
        feed(tracker, [0.3, 0.25, 0.24, 0.4])
        assert tracker.counter == 0
        assert tracker.state == OPEN

    def test_prolonged_closure_counts_once(self):
        tracker = BlinkTracker(T)
        feed(tracker, [0.1] * 50)
        assert tracker.counter == 1
        assert tracker.state == CLOSED

    def test_reopening_does_not_count(self):
        tracker = BlinkTracker(T)
        feed(tracker, [0.1])
        assert tracker.update(0.3) is False
        assert tracker.counter == 1
        assert tracker.state == OPEN

    def test_ratio_equal_to_threshold_is_a_no_op(self):
        tracker = BlinkTracker(T)
        tracker.update(T)
        assert tracker.state == OPEN and tracker.counter == 0

        tracker.update(0.1)
        tracker.update(T)
        assert tracker.state == CLOSED
        tracker.update(0.1)
        assert tracker.counter == 1

    @pytest.mark.parametrize("ratio", [math.inf, math.nan, None])
    def test_unusable_ratio_is_ignored(self, ratio):
        tracker = BlinkTracker(T)
        tracker.update(0.1)
        assert tracker.update(ratio) is False
        assert tracker.state == CLOSED
        assert tracker.counter == 1

    @pytest.mark.parametrize("seed", range(5))
    def test_one_count_per_run_below_threshold(self, seed):
        rng = random.Random(seed)
        ratios = [rng.choice([0.05, 0.15, 0.22, 0.24, 0.3, 0.35]) for _ in range(500)]
        tracker = BlinkTracker(T)
        feed(tracker, ratios)
        assert tracker.counter == count_runs_below(ratios, T)

    def test_threshold_is_configurable(self):
        tracker = BlinkTracker(threshold=0.3)
        feed(tracker, [0.35, 0.25, 0.35])
        assert tracker.counter == 1

    def test_reset_count_keeps_edge_memory(self):
        tracker = BlinkTracker(T)
        feed(tracker, [0.1])
        tracker.reset_count()
        feed(tracker, [0.1, 0.1])
        assert tracker.counter == 0
        assert tracker.state == CLOSED

        feed(tracker, [0.3, 0.1])
        assert tracker.counter == 1


class TestSessionTimer:

    def make_timer(self, ticker, duration=60):
        expiries = []
        ticks = []
        timer = SessionTimer(duration, on_expire=lambda: expiries.append(len(ticks) + 1),
                             on_tick=ticks.append, ticker=ticker)
        return timer, expiries, ticks

    def test_start_runs_ticker(self, ticker):
        timer, _, _ = self.make_timer(ticker)
        assert timer.state == IDLE
        timer.start()
        assert timer.state == RUNNING
        assert ticker.active and ticker.interval == 1000
        assert timer.remaining == 60

    def test_one_expiry_per_duration_without_drift(self, ticker):
        timer, expiries, ticks = self.make_timer(ticker)
        timer.start()
        ticker.fire(180)
        assert expiries == [60, 120, 180]
        assert ticks[58:61] == [1, 60, 59]
        assert timer.remaining == 60

    def test_59_ticks_do_not_expire(self, ticker):
        timer, expiries, _ = self.make_timer(ticker)
        timer.start()
        ticker.fire(59)
        assert expiries == []
        assert timer.remaining == 1

    def test_stop_keeps_remaining(self, ticker):
        timer, _, _ = self.make_timer(ticker)
        timer.start()
        ticker.fire(15)
        timer.stop()
        assert timer.state == IDLE
        assert not ticker.active
        assert timer.remaining == 45

    def test_ticks_while_idle_are_ignored(self, ticker):
        timer, expiries, ticks = self.make_timer(ticker, duration=2)
        ticker.fire(5)
        assert expiries == [] and ticks == []
        assert timer.remaining == 2

    def test_restart_reinitializes(self, ticker):
        timer, _, _ = self.make_timer(ticker)
        timer.start()
        ticker.fire(20)
        timer.stop()
        timer.start()
        assert timer.remaining == 60

    def test_reset_remaining_keeps_state(self, ticker):
        timer, _, _ = self.make_timer(ticker)
        timer.start()
        ticker.fire(30)
        timer.reset_remaining()
        assert timer.remaining == 60
        assert timer.state == RUNNING
        assert ticker.active

    def test_tick_reports_expiry(self, ticker):
        timer = SessionTimer(1, ticker=ticker)
        timer.start()
        assert timer.tick() is True
        assert timer.remaining == 1
