from __future__ import annotations

import threading

import pytest

from src.dismissal_system.dismissal_system.admission.capture import ContinuousScanner, parse_camera_source
from src.dismissal_system.dismissal_system.admission.decoder import payload_text
from src.dismissal_system.dismissal_system.core.exceptions import CaptureError, UnrecognizedFormat


class FakeDevice:
    def __init__(self, frames, *, opened=True):
        self._frames = list(frames)
        self._opened = opened
        self.released = False

    def isOpened(self):
        return self._opened

    def read(self):
        if not self._frames:
            return False, None
        frame = self._frames.pop(0)
        return frame is not None, frame

    def release(self):
        self.released = True


def _scanner(device, decoder=None, **kwargs):
    decoder = decoder or (lambda frame: frame if frame != "noise" else None)
    return ContinuousScanner(decoder, device_factory=lambda source: device, **kwargs)


def test_returns_first_decoded_frame_and_releases():
    device = FakeDevice(["noise", None, "noise", "Name: A\nPhone: 1"])
    assert _scanner(device).scan() == "Name: A\nPhone: 1"
    assert device.released


def test_cancel_releases_device():
    device = FakeDevice(["noise"] * 100)
    cancel = threading.Event()
    seen = []

    def decoder(frame):
        seen.append(frame)
        if len(seen) == 3:
            cancel.set()
        return None

    assert _scanner(device, decoder).scan(cancel) is None
    assert device.released
    assert len(seen) == 3


def test_decoder_error_releases_device():
    device = FakeDevice(["noise"])

    def decoder(frame):
        raise RuntimeError("zbar exploded")

    with pytest.raises(RuntimeError):
        _scanner(device, decoder).scan()
    assert device.released


def test_unopened_device():
    device = FakeDevice([], opened=False)
    with pytest.raises(CaptureError):
        _scanner(device).scan()
    assert device.released


def test_device_that_stops_producing_frames():
    device = FakeDevice([])
    with pytest.raises(CaptureError):
        _scanner(device, max_failed_reads=3).scan()
    assert device.released


def test_device_is_exclusive():
    inside = threading.Event()
    proceed = threading.Event()
    device = FakeDevice(["noise"] * 1000)

    def decoder(frame):
        inside.set()
        proceed.wait(2)
        return "Name: A\nPhone: 1"

    scanner = _scanner(device, decoder)
    results = []
    worker = threading.Thread(target=lambda: results.append(scanner.scan()))
    worker.start()
    assert inside.wait(2)
    with pytest.raises(CaptureError):
        scanner.scan()
    proceed.set()
    worker.join(2)
    assert results == ["Name: A\nPhone: 1"]


@pytest.mark.parametrize(
    "value, expected",
    [(None, 0), ("", 0), ("1", 1), (2, 2), (" rtsp://cam/1 ", "rtsp://cam/1")],
)
def test_parse_camera_source(value, expected):
    assert parse_camera_source(value) == expected


def test_frames_rejected_by_accept_are_skipped():
    device = FakeDevice(["poster", "Name: A\nPhone: 1"])

    def accept(text):
        if "Phone" not in text:
            raise UnrecognizedFormat("not a credential")

    assert _scanner(device).scan(accept=accept) == "Name: A\nPhone: 1"
    assert device.released


def test_non_utf8_payload_does_not_end_the_scan():
    device = FakeDevice([b"Name: Jos\xe9\nPhone: 1", "Name: A\nPhone: 1".encode()])
    scanner = _scanner(device, decoder=payload_text)
    assert scanner.scan() == "Name: A\nPhone: 1"
    assert device.released


def test_other_accept_errors_still_release_the_device():
    device = FakeDevice(["Name: A\nPhone: 1"])

    def accept(text):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        _scanner(device).scan(accept=accept)
    assert device.released
