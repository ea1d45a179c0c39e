from __future__ import annotations

import io
from typing import Any, Optional

from PIL import Image, UnidentifiedImageError

from ..core.exceptions import QrNotFound, UnrecognizedFormat


def payload_text(data: bytes) -> str:
    """QR payload bytes as credential text; credentials are UTF-8."""
    try:
        return data.decode("utf-8").strip()
    except UnicodeDecodeError:
        raise UnrecognizedFormat("QR payload is not UTF-8 text")


def decode_qr(image: Any) -> Optional[str]:
    """Decode the first QR symbol in ``image`` (PIL image or numpy frame).

    Returns None when no symbol is found.
    """
    # pyzbar loads the zbar shared library on import; defer it to first use.
    from pyzbar.pyzbar import ZBarSymbol, decode as pyzbar_decode

    decoded = pyzbar_decode(image, symbols=[ZBarSymbol.QRCODE])
    if not decoded:
        return None
    return payload_text(decoded[0].data)


def load_image(data: bytes) -> Image.Image:
    """Fully decoded RGB image; unreadable, truncated or oversized uploads are ``QrNotFound``."""
    try:
        return Image.open(io.BytesIO(data)).convert("RGB")
    except UnidentifiedImageError:
        raise QrNotFound("Upload is not a readable image")
    except Image.DecompressionBombError:
        raise QrNotFound("Upload is too large to decode")
    except OSError as e:
        raise QrNotFound(f"Upload is a damaged image: {e}")


def decode_qr_bytes(data: bytes) -> Optional[str]:
    """Decode an uploaded still image (PNG/JPEG/...)."""
    return decode_qr(load_image(data))
