from __future__ import annotations

import io

import pytest
from PIL import Image

from src.dismissal_system.dismissal_system.admission.credentials import render_qr_png
from src.dismissal_system.dismissal_system.admission.decoder import load_image, payload_text
from src.dismissal_system.dismissal_system.core.exceptions import QrNotFound, UnrecognizedFormat


def test_payload_text_strips_whitespace():
    assert payload_text(b"  Name: A\nPhone: 1 \n") == "Name: A\nPhone: 1"


def test_non_utf8_payload_is_unrecognized():
    with pytest.raises(UnrecognizedFormat):
        payload_text(b"Name: Jos\xe9\nPhone: 555-0101")


def test_load_image_reads_a_png():
    img = load_image(render_qr_png("Name: A\nPhone: 1"))
    assert img.mode == "RGB"


@pytest.mark.parametrize("data", [b"not a picture", render_qr_png("Name: A\nPhone: 1")[:60]])
def test_unreadable_uploads_are_qr_not_found(data):
    with pytest.raises(QrNotFound):
        load_image(data)


def test_decompression_bomb_is_qr_not_found(monkeypatch):
    buf = io.BytesIO()
    Image.new("L", (64, 64)).save(buf, format="PNG")
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    with pytest.raises(QrNotFound):
        load_image(buf.getvalue())
