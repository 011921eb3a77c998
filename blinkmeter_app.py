"""
BlinkMeter Desktop Application
Counts eye blinks from the webcam over repeating one-minute cycles and
keeps every finished cycle on a bubble map.
"""

import argparse
import logging
import sys

import cv2
from PyQt5.QtWidgets import (QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout,
                             QLabel, QPushButton, QListWidget, QMessageBox, QFrame)
from PyQt5.QtCore import Qt, QRectF, QPointF
from PyQt5.QtGui import QColor, QFont, QImage, QPainter, QPixmap

from blinkmeter import config
from blinkmeter.controller import SessionController
from blinkmeter.errors import FrameSourceError
from blinkmeter.landmarks import LandmarkSource
from blinkmeter.notifier import notify_low_blink, show_notification
from blinkmeter.stream import CameraStream

logger = logging.getLogger(__name__)


def bubble_qcolor(bubble):
    # Qt wants saturation and lightness on a 0-255 scale
    return QColor.fromHsl(
        bubble.hue,
        round(config.BUBBLE_SATURATION * 255 / 100),
        round(config.BUBBLE_LIGHTNESS * 255 / 100),
    )


def frame_to_pixmap(img, mirror=True):
    """BGR frame -> QPixmap, mirrored like a selfie preview"""
    if mirror:
        img = cv2.flip(img, 1)
    rgb = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    height, width = rgb.shape[:2]
    image = QImage(rgb.data, width, height, 3 * width, QImage.Format_RGB888).copy()
    return QPixmap.fromImage(image)


class BubbleMapWidget(QWidget):
    """Canvas showing one bubble per completed cycle"""

    def __init__(self, width=config.BUBBLE_CANVAS_SIZE[0], height=config.BUBBLE_CANVAS_SIZE[1]):
        super().__init__()
        self.setFixedSize(width, height)
        self.bubbles = ()
        self.label_font = QFont("monospace", 10)
        self.label_font.setStyleHint(QFont.Monospace)
        self.label_font.setPixelSize(14)

    def set_bubbles(self, bubbles):
        self.bubbles = tuple(bubbles)
        self.update()

    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing)
        painter.fillRect(self.rect(), QColor(30, 33, 40))
        painter.setPen(Qt.NoPen)

        for bubble in self.bubbles:
            painter.setOpacity(config.BUBBLE_OPACITY)
            painter.setBrush(bubble_qcolor(bubble))
            painter.drawEllipse(QPointF(bubble.x, bubble.y), bubble.radius, bubble.radius)
            painter.setOpacity(1.0)

            # Labels always use the identity transform so they never mirror
            painter.save()
            painter.resetTransform()
            painter.setPen(QColor(255, 255, 255))
            painter.setFont(self.label_font)
            text_rect = QRectF(bubble.x - bubble.radius, bubble.y - bubble.radius,
                               bubble.radius * 2, bubble.radius * 2)
            painter.drawText(text_rect, Qt.AlignCenter, bubble.label)
            painter.restore()
            painter.setPen(Qt.NoPen)

        painter.end()


class BlinkMeterApp(QMainWindow):
    """Main application window"""

    def __init__(self, controller, low_blink_per_minute=config.LOW_BLINK_WARNING):
        super().__init__()
        self.setWindowTitle("BlinkMeter")
        self.controller = controller
        self.low_blink_per_minute = low_blink_per_minute

        self.setup_ui()

        # Connect signals
        self.controller.bubble_history.add_listener(self.bubble_map.set_bubbles)
        self.controller.blink_count_changed.connect(self.update_blink_count)
        self.controller.tick.connect(self.update_timer)
        self.controller.cycle_completed.connect(self.add_cycle_record)
        self.controller.session_reset.connect(self.log_list.clear)
        self.controller.active_changed.connect(self.update_active_state)
        self.controller.frame_ready.connect(self.show_frame)
        self.controller.frame_error.connect(self.handle_frame_error)
        self.toggle_button.clicked.connect(self.toggle_camera)
        self.reset_button.clicked.connect(self.controller.reset)

        self.update_blink_count(self.controller.blink_count)
        self.update_timer(self.controller.remaining_seconds)

    def setup_ui(self):
        central = QWidget()
        central.setStyleSheet("""
            QWidget {
                background-color: rgb(40, 44, 52);
                color: white;
                font-family: 'SF Pro Display', 'Helvetica Neue', sans-serif;
            }
            QLabel {
                font-size: 16px;
                padding: 2px;
            }
            QPushButton {
                background-color: rgba(70, 130, 180, 180);
                border: none;
                border-radius: 6px;
                padding: 8px;
                color: white;
                font-weight: bold;
            }
            QPushButton:hover {
                background-color: rgba(100, 150, 200, 200);
            }
            QPushButton:pressed {
                background-color: rgba(50, 100, 150, 200);
            }
            QListWidget {
                background-color: rgba(0, 0, 0, 40);
                border-radius: 6px;
                font-family: monospace;
            }
        """)
        self.setCentralWidget(central)
        layout = QHBoxLayout(central)
        layout.setContentsMargins(15, 15, 15, 15)
        layout.setSpacing(12)

        # Camera side
        left = QVBoxLayout()
        self.preview_label = QLabel("Camera off")
        self.preview_label.setAlignment(Qt.AlignCenter)
        self.preview_label.setFixedSize(*config.DEFAULT_FRAME_SIZE)
        self.preview_label.setStyleSheet("background-color: black;")
        left.addWidget(self.preview_label)

        counters = QHBoxLayout()
        self.blink_label = QLabel()
        self.blink_label.setFont(QFont("SF Pro Display", 14, QFont.Bold))
        self.timer_label = QLabel()
        self.timer_label.setFont(QFont("SF Pro Display", 14, QFont.Bold))
        counters.addWidget(self.blink_label)
        counters.addStretch()
        counters.addWidget(self.timer_label)
        left.addLayout(counters)

        buttons = QHBoxLayout()
        self.toggle_button = QPushButton("Turn Camera On")
        self.reset_button = QPushButton("Reset")
        buttons.addWidget(self.toggle_button)
        buttons.addWidget(self.reset_button)
        left.addLayout(buttons)

        left.addWidget(QLabel("Data log"))
        self.log_list = QListWidget()
        left.addWidget(self.log_list)
        layout.addLayout(left)

        # Separator
        line = QFrame()
        line.setFrameShape(QFrame.VLine)
        line.setStyleSheet("color: rgba(255, 255, 255, 60);")
        layout.addWidget(line)

        right = QVBoxLayout()
        right.addWidget(QLabel("Bubble map"))
        self.bubble_map = BubbleMapWidget()
        right.addWidget(self.bubble_map)
        right.addStretch()
        layout.addLayout(right)

    def toggle_camera(self):
        """Turn the camera (and the session) on or off"""
        try:
            self.controller.toggle()
        except FrameSourceError as e:
            logger.error("Camera error: %s", e)
            show_notification("BlinkMeter", "Could not start camera.")
            QMessageBox.warning(self, "Camera error",
                                f"Could not start camera. Check permissions.\n\n{e}")

    def update_active_state(self, active):
        if active:
            self.toggle_button.setText("Turn Camera Off")
        else:
            self.toggle_button.setText("Turn Camera On")
            self.preview_label.clear()
            self.preview_label.setText("Camera off")

    def update_blink_count(self, count):
        self.blink_label.setText(f"Blinks: {count}")

    def update_timer(self, remaining):
        self.timer_label.setText(f"Time: {remaining}s")

    def add_cycle_record(self, record):
        self.log_list.insertItem(0, str(record))
        notify_low_blink(record, self.controller.timer.duration, self.low_blink_per_minute)

    def show_frame(self, img):
        if not self.controller.is_active:
            return
        pixmap = frame_to_pixmap(img)
        self.preview_label.setPixmap(pixmap.scaled(
            self.preview_label.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation))

    def handle_frame_error(self, message):
        self.controller.stop()
        QMessageBox.critical(self, "Frame processing stopped", message)

    def closeEvent(self, event):
        """Stop the session before the window goes away"""
        self.controller.stop()
        self.controller.landmark_source.close()
        event.accept()


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Count eye blinks per cycle from the webcam")
    parser.add_argument("--camera", type=int, default=config.CAMERA_INDEX, help="camera index")
    parser.add_argument("--threshold", type=float, default=config.EAR_BLINK_THRES,
                        help="EAR below which the eye counts as closed")
    parser.add_argument("--cycle", type=int, default=config.CYCLE_DURATION_SEC,
                        help="cycle length in seconds")
    parser.add_argument("--model", default=None, help="path to face_landmarker.task")
    parser.add_argument("--debug", action="store_true", help="log every blink")
    return parser.parse_args(argv)


def main():
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Keep MediaPipe's own logging out of the console
    logging.getLogger("mediapipe").setLevel(logging.ERROR)

    app = QApplication(sys.argv)

    landmark_source = LandmarkSource(args.model)
    controller = SessionController(
        landmark_source,
        camera=CameraStream(args.camera),
        threshold=args.threshold,
        cycle_duration=args.cycle,
    )

    window = BlinkMeterApp(controller)
    window.show()

    sys.exit(app.exec_())


if __name__ == "__main__":
    main()
