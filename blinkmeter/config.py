# Thresholds and constants shared across modules

# Eye Aspect Ratio (EAR) threshold below which the eye counts as closed
EAR_BLINK_THRES = 0.23

# Measurement cycle
CYCLE_DURATION_SEC = 60
TICK_INTERVAL_MS = 1000

# Low blink warning (blinks per minute, scaled to the cycle length)
LOW_BLINK_WARNING = 12

# MediaPipe FaceLandmarker options
MAX_NUM_FACES = 1
REFINE_LANDMARKS = True
MIN_DETECTION_CONFIDENCE = 0.5
MIN_TRACKING_CONFIDENCE = 0.5
MESH_LANDMARK_COUNT = 468  # anything past this index is an iris point

# Camera
CAMERA_INDEX = 0
DEFAULT_FRAME_SIZE = (640, 480)  # used when the device reports no size
FRAME_INTERVAL_SEC = 1 / 30

# Bubble map
BUBBLE_CANVAS_SIZE = (400, 500)
BUBBLE_MIN_RADIUS = 15
BUBBLE_MAX_RADIUS = 120
BUBBLE_SATURATION = 85
BUBBLE_LIGHTNESS = 55
BUBBLE_OPACITY = 0.75

# MediaPipe Face Mesh landmark indices used for the EAR of each eye
RIGHT_EYE_EAR_POINTS = {"upper": 159, "lower": 145, "left_corner": 33, "right_corner": 133}
LEFT_EYE_EAR_POINTS = {"upper": 386, "lower": 374, "left_corner": 263, "right_corner": 362}
