import logging
import random
from dataclasses import dataclass, field
from datetime import datetime

from blinkmeter.config import (
    BUBBLE_CANVAS_SIZE,
    BUBBLE_LIGHTNESS,
    BUBBLE_MAX_RADIUS,
    BUBBLE_MIN_RADIUS,
    BUBBLE_SATURATION,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleRecord:
    """Blink count of one completed measurement cycle"""
    cycle_number: int
    blink_count: int
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self):
        return f"Cycle {self.cycle_number}: {self.blink_count} blinks"


@dataclass(frozen=True)
class Bubble:
    """Marker drawn on the bubble map for one completed cycle"""
    x: float
    y: float
    radius: float
    hue: int
    label: str
    cycle_number: int
    blink_count: int

    @property
    def color(self):
        return f"hsl({self.hue}, {BUBBLE_SATURATION}%, {BUBBLE_LIGHTNESS}%)"


def bubble_radius(blink_count):
    # Sub-linear so a few high-count cycles don't swamp the map
    return min(BUBBLE_MAX_RADIUS, blink_count ** 0.8 * 2 + BUBBLE_MIN_RADIUS)


def bubble_hue(blink_count):
    """Green (120) for few blinks down to red (0) from 30 blinks on"""
    return max(0, 120 - min(blink_count * 4, 120))


class BubbleHistory:
    """
    Append-only collection of bubbles, one per completed cycle.

    Listeners registered with add_listener() are called after every
    change so the display surface can clear and redraw.
    """
    def __init__(self, width=BUBBLE_CANVAS_SIZE[0], height=BUBBLE_CANVAS_SIZE[1], rng=None):
        self.width = width
        self.height = height
        self.rng = rng if rng is not None else random.Random()
        self._bubbles = []
        self._listeners = []

    @property
    def bubbles(self):
        return tuple(self._bubbles)

    def __len__(self):
        return len(self._bubbles)

    def add_listener(self, callback):
        self._listeners.append(callback)

    def _notify(self):
        for callback in self._listeners:
            callback(self.bubbles)

    def add_bubble(self, blink_count, cycle_number):
        radius = bubble_radius(blink_count)
        # Shrink rather than spill over on a canvas too small for the bubble
        radius = min(radius, self.width / 2, self.height / 2)

        bubble = Bubble(
            x=self.rng.uniform(radius, self.width - radius),
            y=self.rng.uniform(radius, self.height - radius),
            radius=radius,
            hue=bubble_hue(blink_count),
            label=f"C{cycle_number}: {blink_count}",
            cycle_number=cycle_number,
            blink_count=blink_count,
        )
        self._bubbles.append(bubble)
        self._notify()
        return bubble

    def clear(self):
        self._bubbles.clear()
        self._notify()


class CycleAggregator:
    """Turns each expired cycle into a log record and a bubble"""
    def __init__(self, blink_tracker, bubble_history):
        self.blink_tracker = blink_tracker
        self.bubble_history = bubble_history
        self.cycle_count = 0
        self._records = []

    @property
    def records(self):
        """Completed cycles, newest first"""
        return tuple(self._records)

    def complete_cycle(self, blink_count):
        # Record and bubble must capture the count before it is zeroed
        self.cycle_count += 1
        record = CycleRecord(self.cycle_count, blink_count)
        self._records.insert(0, record)
        self.bubble_history.add_bubble(blink_count, self.cycle_count)
        self.blink_tracker.reset_count()
        logger.info("%s", record)
        return record

    def clear(self):
        self.cycle_count = 0
        self._records.clear()
