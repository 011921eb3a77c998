import logging
import math

from PyQt5.QtCore import QTimer

from blinkmeter.config import CYCLE_DURATION_SEC, EAR_BLINK_THRES, TICK_INTERVAL_MS

logger = logging.getLogger(__name__)

OPEN = "OPEN"
CLOSED = "CLOSED"

IDLE = "IDLE"
RUNNING = "RUNNING"


class BlinkTracker:
    """Manages blink detection state"""
    def __init__(self, threshold=EAR_BLINK_THRES):
        self.threshold = threshold
        self.counter = 0
        self.is_currently_blinking = False

    @property
    def state(self):
        return CLOSED if self.is_currently_blinking else OPEN

    def update(self, ear):
        """
        Feed one averaged EAR value into the detector.

        The count only moves on the OPEN -> CLOSED edge, so a closure that
        lasts many frames is one blink. Returns True when a blink was
        detected on this frame.
        """
        if ear is None or not math.isfinite(ear):
            return False

        if ear < self.threshold and not self.is_currently_blinking:
            self.is_currently_blinking = True
            self.counter += 1
            logger.debug("Blink detected (EAR %.3f), count %d", ear, self.counter)
            return True
        elif ear > self.threshold and self.is_currently_blinking:
            self.is_currently_blinking = False
        return False

    def reset_count(self):
        """Zero the count; an eye that is still closed stays CLOSED"""
        self.counter = 0


class SessionTimer:
    """
    Repeating countdown of `duration` seconds.

    The ticker is anything with the QTimer interface (timeout signal,
    start(ms), stop()); each timeout calls tick(). On expiry the
    on_expire callback runs and the countdown starts over without
    needing to be restarted. on_tick receives the remaining seconds
    after every tick.
    """
    def __init__(self, duration=CYCLE_DURATION_SEC, on_expire=None, on_tick=None,
                 ticker=None, interval_ms=TICK_INTERVAL_MS):
        self.duration = duration
        self.remaining = duration
        self.state = IDLE
        self.on_expire = on_expire
        self.on_tick = on_tick
        self.interval_ms = interval_ms
        self.ticker = ticker if ticker is not None else QTimer()
        self.ticker.timeout.connect(self.tick)

    def start(self):
        """Start a fresh countdown"""
        self.ticker.stop()
        self.remaining = self.duration
        self.state = RUNNING
        self.ticker.start(self.interval_ms)

    def stop(self):
        """Stop ticking; remaining time is left as is"""
        self.ticker.stop()
        self.state = IDLE

    def reset_remaining(self):
        self.remaining = self.duration

    def tick(self):
        """
        Advance the countdown by one second.

        Decrement, expiry check and restart all happen here so a tick can
        never fire the expiry twice. Returns True if the cycle expired.
        """
        if self.state != RUNNING:
            return False

        self.remaining -= 1
        expired = self.remaining <= 0
        if expired:
            if self.on_expire is not None:
                self.on_expire()
            self.remaining = self.duration

        if self.on_tick is not None:
            self.on_tick(self.remaining)
        return expired
