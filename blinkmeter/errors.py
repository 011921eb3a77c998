class BlinkMeterError(Exception):
    """Base class for BlinkMeter errors"""


class FrameSourceError(BlinkMeterError):
    """The camera could not be opened (missing device, permission denied)"""


class LandmarkContractError(BlinkMeterError, ValueError):
    """The landmark source delivered something that is not a landmark frame"""
