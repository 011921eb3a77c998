import logging
import threading
import time

import cv2

from blinkmeter.config import CAMERA_INDEX, DEFAULT_FRAME_SIZE, FRAME_INTERVAL_SEC
from blinkmeter.errors import FrameSourceError

logger = logging.getLogger(__name__)


class CameraStream:
    """OpenCV webcam wrapper"""
    def __init__(self, cam_index=CAMERA_INDEX):
        self.cam_index = cam_index
        self.cap = None
        self.frame_width, self.frame_height = DEFAULT_FRAME_SIZE

    @property
    def is_open(self):
        return self.cap is not None and self.cap.isOpened()

    def open(self):
        """Open the device or raise FrameSourceError"""
        cap = cv2.VideoCapture(self.cam_index)
        if not cap.isOpened():
            cap.release()
            raise FrameSourceError(
                f"Could not open camera {self.cam_index}. Check that it is connected "
                "and that this application is allowed to use it."
            )
        self.cap = cap

        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self.frame_width = width or DEFAULT_FRAME_SIZE[0]
        self.frame_height = height or DEFAULT_FRAME_SIZE[1]
        logger.info("Camera %d opened (%dx%d)", self.cam_index, self.frame_width, self.frame_height)

    def read(self):
        if self.cap is None:
            return False, None
        return self.cap.read()

    def release(self):
        if self.cap is not None:
            self.cap.release()
            self.cap = None
            logger.info("Camera %d released", self.cam_index)


class FrameLoop:
    """
    Pulls frames from the camera and hands them to the landmark source on
    a background thread.

    The loop checks should_continue() before every frame; stop() clears
    the flag and waits for the thread to finish.
    """
    def __init__(self, camera, landmark_source, on_frame=None, on_error=None,
                 interval=FRAME_INTERVAL_SEC):
        self.camera = camera
        self.landmark_source = landmark_source
        self.on_frame = on_frame
        self.on_error = on_error
        self.interval = interval
        self.running = False
        self.thread = None

    def should_continue(self):
        return self.running

    def start(self):
        if self.running:
            return
        if self.thread is not None and self.thread.is_alive():
            # Never two workers on one camera
            self.thread.join()
        self.running = True
        self.thread = threading.Thread(target=self._run, name="frame-loop")
        self.thread.daemon = True
        self.thread.start()
        logger.debug("Frame loop started")

    def stop(self):
        """Clear the flag and wait until the worker has finished its frame"""
        self.running = False
        if self.thread is None or self.thread is threading.current_thread():
            return
        # No timeout: the camera may only be released once the worker is gone
        self.thread.join()
        self.thread = None
        logger.debug("Frame loop stopped")

    def _run(self):
        prev_timestamp = 0
        try:
            while self.should_continue():
                ret, img = self.camera.read()
                if not ret:
                    time.sleep(self.interval)
                    continue

                # detect_for_video needs strictly increasing timestamps
                timestamp = int(time.monotonic() * 1000)
                if timestamp <= prev_timestamp:
                    timestamp = prev_timestamp + 1
                prev_timestamp = timestamp

                self.landmark_source.process(img, timestamp)
                if self.on_frame is not None:
                    self.on_frame(img)

                time.sleep(self.interval)
        except Exception as e:
            logger.exception("Error in frame loop")
            self.running = False
            if self.on_error is not None:
                self.on_error(e)
