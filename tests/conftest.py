import threading
import time

import pytest
from PyQt5.QtCore import QCoreApplication

from blinkmeter.config import LEFT_EYE_EAR_POINTS, RIGHT_EYE_EAR_POINTS
from blinkmeter.errors import FrameSourceError
from blinkmeter.utils import Point2D


class FakeSignal:
    def __init__(self):
        self.slots = []

    def connect(self, slot):
        self.slots.append(slot)

    def emit(self):
        for slot in self.slots:
            slot()


class FakeTicker:
    """Stands in for QTimer; fire() delivers timeouts by hand"""
    def __init__(self):
        self.timeout = FakeSignal()
        self.active = False
        self.interval = None

    def start(self, interval):
        self.active = True
        self.interval = interval

    def stop(self):
        self.active = False

    def fire(self, times=1):
        for _ in range(times):
            self.timeout.emit()


class FakeCamera:
    def __init__(self, frames=(), fail=False):
        self.frames = list(frames)
        self.fail = fail
        self.opened = False
        self.released = False

    def open(self):
        if self.fail:
            raise FrameSourceError("permission denied")
        self.opened = True

    def read(self):
        if self.frames:
            return True, self.frames.pop(0)
        return False, None

    def release(self):
        self.opened = False
        self.released = True


class FakeLandmarkSource:
    def __init__(self):
        self.callback = None
        self.processed = []
        self.closed = False

    def on_results(self, callback):
        self.callback = callback

    def process(self, image, timestamp_ms):
        self.processed.append((image, timestamp_ms))

    def deliver(self, faces):
        self.callback(faces)

    def close(self):
        self.closed = True


class SlowLandmarkSource(FakeLandmarkSource):
    """Holds the worker inside process() for `delay` seconds"""
    def __init__(self, delay=0.3):
        super().__init__()
        self.delay = delay
        self.entered = threading.Event()
        self.finished = False

    def process(self, image, timestamp_ms):
        self.entered.set()
        time.sleep(self.delay)
        super().process(image, timestamp_ms)
        self.finished = True


def _eye(points, ear):
    # Corners one unit apart on y=0, lids `ear` apart: EAR == ear exactly
    return {
        points["left_corner"]: Point2D(0.0, 0.0),
        points["right_corner"]: Point2D(1.0, 0.0),
        points["upper"]: Point2D(0.5, 0.0),
        points["lower"]: Point2D(0.5, ear),
    }


def make_frame(ear, left_ear=None):
    """Landmark frame whose right eye has `ear` and left eye `left_ear`"""
    frame = {}
    frame.update(_eye(RIGHT_EYE_EAR_POINTS, ear))
    frame.update(_eye(LEFT_EYE_EAR_POINTS, ear if left_ear is None else left_ear))
    return frame


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture
def ticker():
    return FakeTicker()


@pytest.fixture
def camera():
    return FakeCamera()


@pytest.fixture
def landmark_source():
    return FakeLandmarkSource()
