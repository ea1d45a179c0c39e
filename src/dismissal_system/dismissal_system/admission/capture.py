from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Union

import cv2

from ..core.constants import DEFAULT_CAPTURE_MAX_FAILED_READS
from ..core.exceptions import CaptureError, UnrecognizedFormat

logger = logging.getLogger(__name__)

CameraSource = Union[int, str]


def parse_camera_source(value: Union[int, str, None]) -> CameraSource:
    """Webcam index ("0") or stream/file URL."""
    if value is None or value == "":
        return 0
    if isinstance(value, int):
        return value
    value = value.strip()
    return int(value) if value.isdigit() else value


def open_camera(source: CameraSource) -> cv2.VideoCapture:
    cap = cv2.VideoCapture(source)
    # Keep latency low: only the newest frame matters for scanning.
    cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
    return cap


def to_grayscale(frame: Any) -> Any:
    """zbar wants 8-bit single-channel pixels."""
    if getattr(frame, "ndim", 2) == 3:
        return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    return frame


class ContinuousScanner:
    """Reads frames from a capture device until one decodes to an accepted credential.

    Frames whose QR text is rejected with ``UnrecognizedFormat`` (a poster, a
    menu link) are skipped and scanning goes on.

    The device is owned exclusively for the duration of ``scan`` and released
    on success, on cancellation and on any error.
    """

    def __init__(
        self,
        decoder: Callable[[Any], Optional[str]],
        *,
        source: CameraSource = 0,
        device_factory: Callable[[CameraSource], Any] = open_camera,
        max_failed_reads: int = DEFAULT_CAPTURE_MAX_FAILED_READS,
        frame_interval: float = 0.0,
    ):
        self._decoder = decoder
        self._source = source
        self._device_factory = device_factory
        self._max_failed_reads = int(max_failed_reads)
        self._frame_interval = float(frame_interval)
        self._lock = threading.Lock()

    def scan(
        self,
        cancel: threading.Event | None = None,
        *,
        accept: Callable[[str], Any] | None = None,
    ) -> Optional[str]:
        """Decoded text, or None if ``cancel`` was set first.

        ``accept`` is called on each decoded text and raises
        ``UnrecognizedFormat`` for text that is not a credential.

        Raises ``CaptureError`` when the device cannot be opened, stops
        producing frames, or is already in use by another scan.
        """
        cancel = cancel or threading.Event()
        if not self._lock.acquire(blocking=False):
            raise CaptureError("Capture device is already in use")
        try:
            cap = self._device_factory(self._source)
            try:
                return self._loop(cap, cancel, accept)
            finally:
                cap.release()
                logger.info("capture device %s released", self._source)
        finally:
            self._lock.release()

    def _loop(self, cap: Any, cancel: threading.Event, accept: Callable[[str], Any] | None) -> Optional[str]:
        if not cap.isOpened():
            raise CaptureError(f"Cannot open capture device {self._source!r}")

        failed_reads = 0
        frames = 0
        while not cancel.is_set():
            ok, frame = cap.read()
            if not ok or frame is None:
                failed_reads += 1
                if failed_reads >= self._max_failed_reads:
                    raise CaptureError(f"Capture device {self._source!r} stopped producing frames")
                continue

            failed_reads = 0
            frames += 1
            try:
                text = self._decoder(to_grayscale(frame))
                if text and accept is not None:
                    accept(text)
            except UnrecognizedFormat as e:
                logger.info("frame %d: skipping QR that is not a credential (%s)", frames, e)
                text = None
            if text:
                logger.info("QR decoded after %d frames", frames)
                return text
            if self._frame_interval:
                cancel.wait(self._frame_interval)

        logger.info("capture cancelled after %d frames", frames)
        return None
