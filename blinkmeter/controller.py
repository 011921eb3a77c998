import logging
import threading

from PyQt5.QtCore import QObject, pyqtSignal

from blinkmeter.config import BUBBLE_CANVAS_SIZE, CYCLE_DURATION_SEC, EAR_BLINK_THRES
from blinkmeter.history import BubbleHistory, CycleAggregator
from blinkmeter.stream import CameraStream, FrameLoop
from blinkmeter.trackers import BlinkTracker, SessionTimer
from blinkmeter.utils import average_eye_aspect_ratio

logger = logging.getLogger(__name__)


class SessionController(QObject):
    """
    Owns one blink-monitoring session: the blink tracker, the repeating
    cycle timer, the cycle log and the bubble history.

    Frames arrive on the frame loop thread while the timer ticks on the Qt
    event loop, so every access to session state goes through self.lock.
    """

    blink_detected = pyqtSignal(int)
    blink_count_changed = pyqtSignal(int)
    tick = pyqtSignal(int)
    cycle_completed = pyqtSignal(object)
    session_reset = pyqtSignal()
    active_changed = pyqtSignal(bool)
    frame_ready = pyqtSignal(object)
    frame_error = pyqtSignal(str)

    def __init__(self, landmark_source, camera=None, ticker=None,
                 threshold=EAR_BLINK_THRES, cycle_duration=CYCLE_DURATION_SEC,
                 canvas_size=BUBBLE_CANVAS_SIZE, rng=None):
        super().__init__()
        self.lock = threading.Lock()
        self.is_active = False

        self.camera = camera if camera is not None else CameraStream()
        self.landmark_source = landmark_source
        self.landmark_source.on_results(self._on_results)
        self.frame_loop = FrameLoop(
            self.camera, self.landmark_source,
            on_frame=self.frame_ready.emit,
            on_error=self._on_frame_error,
        )

        self.blink_tracker = BlinkTracker(threshold)
        self.bubble_history = BubbleHistory(*canvas_size, rng=rng)
        self.aggregator = CycleAggregator(self.blink_tracker, self.bubble_history)
        self.timer = SessionTimer(
            cycle_duration,
            on_expire=self._on_cycle_expired,
            on_tick=self.tick.emit,
            ticker=ticker,
        )

    # Read-only observables

    @property
    def blink_count(self):
        with self.lock:
            return self.blink_tracker.counter

    @property
    def remaining_seconds(self):
        with self.lock:
            return self.timer.remaining

    @property
    def cycle_log(self):
        """Completed cycles, newest first"""
        with self.lock:
            return self.aggregator.records

    @property
    def bubbles(self):
        with self.lock:
            return self.bubble_history.bubbles

    # Entry points

    def toggle(self):
        """Start the session if stopped, stop it if running"""
        if self.is_active:
            self.stop()
        else:
            self.start()

    def start(self):
        """
        Open the camera and start the frame loop and the cycle timer.

        Raises FrameSourceError if the camera can't be opened; nothing is
        started in that case.
        """
        if self.is_active:
            return
        self.camera.open()

        self.is_active = True
        self.frame_loop.start()
        with self.lock:
            self.timer.start()
        logger.info("Session started")
        self.active_changed.emit(True)
        self.tick.emit(self.timer.remaining)

    def stop(self):
        """Stop frame processing and the timer; remaining time is kept"""
        if not self.is_active:
            return
        self.is_active = False
        self.frame_loop.stop()
        with self.lock:
            self.timer.stop()
        self.camera.release()
        logger.info("Session stopped")
        self.active_changed.emit(False)

    def reset(self):
        """Clear counts, cycle log and bubbles; does not start or stop anything"""
        with self.lock:
            # Edge memory survives so a closure spanning the reset isn't recounted
            self.blink_tracker.reset_count()
            self.timer.reset_remaining()
            self.aggregator.clear()
            self.bubble_history.clear()
            remaining = self.timer.remaining
        logger.info("Session reset")
        self.session_reset.emit()
        self.blink_count_changed.emit(0)
        self.tick.emit(remaining)

    # Callbacks

    def process_landmarks(self, face_landmarks):
        """
        Run blink detection on one face's landmark frame.

        Frames missing an eye landmark are skipped. Returns True if a blink was
        detected.
        """
        ear = average_eye_aspect_ratio(face_landmarks)
        if ear is None:
            return False

        with self.lock:
            detected = self.blink_tracker.update(ear)
            count = self.blink_tracker.counter
        if detected:
            self.blink_detected.emit(count)
            self.blink_count_changed.emit(count)
        return detected

    def _on_results(self, faces):
        if not self.is_active or not faces:
            return
        self.process_landmarks(faces[0])

    def _on_cycle_expired(self):
        # Runs inside timer.tick(); snapshot and reset happen under one lock
        with self.lock:
            record = self.aggregator.complete_cycle(self.blink_tracker.counter)
        self.cycle_completed.emit(record)
        self.blink_count_changed.emit(0)

    def _on_frame_error(self, error):
        self.frame_error.emit(str(error))
