import logging

from plyer import notification

logger = logging.getLogger(__name__)


def show_notification(title: str, message: str, timeout: int = 3):
    """
    Cross-platform desktop notification.
    - Windows: uses Action Center
    - macOS: uses Notification Center
    - Linux: uses notify-send (desktop environment must support it)

    Returns False if the platform could not show it.
    """
    try:
        notification.notify(
            title=title,
            message=message,
            app_name="BlinkMeter",
            timeout=timeout
        )
        return True
    except Exception as e:
        logger.warning("Notification failed: %s", e)
        return False


def low_blink_threshold(cycle_duration, per_minute):
    """Blink count below which a cycle of cycle_duration seconds is low"""
    return per_minute * cycle_duration / 60.0


def notify_low_blink(record, cycle_duration, per_minute):
    """Warn when a completed cycle's blink rate is below per_minute"""
    if record.blink_count >= low_blink_threshold(cycle_duration, per_minute):
        return False
    return show_notification(
        "Low Blink Rate",
        f"Only {record.blink_count} blinks in cycle {record.cycle_number}. "
        "Remember to blink regularly to prevent dry eyes.",
    )
