import logging
from pathlib import Path

import cv2
import mediapipe as mp

from blinkmeter.config import (
    MAX_NUM_FACES,
    MESH_LANDMARK_COUNT,
    MIN_DETECTION_CONFIDENCE,
    MIN_TRACKING_CONFIDENCE,
    REFINE_LANDMARKS,
)

logger = logging.getLogger(__name__)

BaseOptions = mp.tasks.BaseOptions
FaceLandmarker = mp.tasks.vision.FaceLandmarker
FaceLandmarkerOptions = mp.tasks.vision.FaceLandmarkerOptions
VisionRunningMode = mp.tasks.vision.RunningMode


def default_model_path():
    model_path = Path(__file__).parent.parent / "models" / "face_landmarker.task"
    if not model_path.exists():
        # Try relative path
        model_path = Path("models") / "face_landmarker.task"
    return str(model_path.resolve())


class LandmarkSource:
    """
    MediaPipe FaceLandmarker running in VIDEO mode.

    Results are delivered to the callback registered with on_results() as
    a list of landmark frames, one per detected face.
    """
    def __init__(self, model_path=None):
        self.model_path = model_path or default_model_path()
        self.refine_landmarks = REFINE_LANDMARKS
        self.options = None
        self._landmarker = None
        self._callback = None
        self.configure()

    def configure(self, max_faces=MAX_NUM_FACES, refine_landmarks=REFINE_LANDMARKS,
                  min_detection_confidence=MIN_DETECTION_CONFIDENCE,
                  min_tracking_confidence=MIN_TRACKING_CONFIDENCE):
        """Set detector options; takes effect on the next processed frame"""
        self.close()
        self.refine_landmarks = refine_landmarks
        self.options = FaceLandmarkerOptions(
            base_options=BaseOptions(model_asset_path=self.model_path),
            running_mode=VisionRunningMode.VIDEO,
            num_faces=max_faces,
            min_face_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def on_results(self, callback):
        self._callback = callback

    def process(self, image, timestamp_ms):
        """Run the landmarker on one BGR frame"""
        if self._landmarker is None:
            logger.info("Loading face landmarker model from %s", self.model_path)
            self._landmarker = FaceLandmarker.create_from_options(self.options)

        rgb_frame = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)
        detection_result = self._landmarker.detect_for_video(mp_image, timestamp_ms)

        faces = [list(face) for face in detection_result.face_landmarks]
        if not self.refine_landmarks:
            # Without refinement only the base mesh is reported (no iris points)
            faces = [face[:MESH_LANDMARK_COUNT] for face in faces]

        if self._callback is not None:
            self._callback(faces)
        return faces

    def close(self):
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
