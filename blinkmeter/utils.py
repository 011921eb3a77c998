import math
from collections import namedtuple

import numpy as np

from blinkmeter.config import LEFT_EYE_EAR_POINTS, RIGHT_EYE_EAR_POINTS
from blinkmeter.errors import LandmarkContractError

Point2D = namedtuple("Point2D", ["x", "y"])


def calculate_eye_aspect_ratio(upper, lower, left_corner, right_corner):
    """
    Calculate Eye Aspect Ratio (EAR) from four eye landmarks.
    https://vision.fe.uni-lj.si/cvww2016/proceedings/papers/05.pdf
    Args:
        upper: Upper eyelid point (anything with .x and .y)
        lower: Lower eyelid point
        left_corner: One horizontal eye corner
        right_corner: The other horizontal eye corner

    Returns:
        EAR value (float). Degenerate geometry (zero corner distance)
        gives inf or nan rather than raising.
    """
    vertical_dist = np.linalg.norm([upper.x - lower.x, upper.y - lower.y])
    horizontal_dist = np.linalg.norm([left_corner.x - right_corner.x, left_corner.y - right_corner.y])

    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(vertical_dist) / horizontal_dist)


def _landmark(face_landmarks, idx):
    try:
        return face_landmarks[idx]
    except (IndexError, KeyError):
        return None


def eye_aspect_ratio(face_landmarks, eye_points):
    """EAR of one eye, or None when one of its landmarks is missing"""
    points = [_landmark(face_landmarks, eye_points[name])
              for name in ("upper", "lower", "left_corner", "right_corner")]
    if any(p is None for p in points):
        return None
    return calculate_eye_aspect_ratio(*points)


def average_eye_aspect_ratio(face_landmarks,
                             right_eye_points=RIGHT_EYE_EAR_POINTS,
                             left_eye_points=LEFT_EYE_EAR_POINTS):
    """
    Average the EAR of both eyes for one landmark frame.

    A frame missing any required landmark is rejected (None). An eye whose
    ratio is non-finite is left out of the average; None when neither eye
    gives a finite ratio.

    Raises:
        LandmarkContractError: face_landmarks is not an indexable frame.
    """
    if face_landmarks is None or not hasattr(face_landmarks, "__getitem__"):
        raise LandmarkContractError(
            f"expected an indexable landmark frame, got {type(face_landmarks).__name__}"
        )

    ears = [eye_aspect_ratio(face_landmarks, eye_points)
            for eye_points in (right_eye_points, left_eye_points)]
    if any(ear is None for ear in ears):
        return None

    usable = [ear for ear in ears if math.isfinite(ear)]

    if not usable:
        return None
    return sum(usable) / len(usable)
