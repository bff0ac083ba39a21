"""
QR code decoding and WhatsApp number extraction.

The decoder turns an image into the single string a QR code carries; the
extractor decides whether that string points at a WhatsApp-reachable phone
number. ``QRScanSession`` tracks one scan from image selection to result.
"""

import io
import logging
import re
from enum import Enum
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)


WHATSAPP_URL_PATTERNS: Tuple["re.Pattern[str]", ...] = (
    re.compile(r"wa\.me/(\+?\d+)", re.IGNORECASE | re.ASCII),
    re.compile(r"whatsapp\.com/send\?phone=(\+?\d+)", re.IGNORECASE | re.ASCII),
    re.compile(r"api\.whatsapp\.com/send\?phone=(\+?\d+)", re.IGNORECASE | re.ASCII),
)

BARE_PHONE_PATTERN = re.compile(r"\+?\d{10,15}", re.ASCII)


def extract_phone_from_payload(payload: Optional[str]) -> Optional[str]:
    """Find a WhatsApp phone number in a decoded QR payload.

    Args:
        payload: Decoded QR string

    Returns:
        The digit run (with its leading ``+`` when present), or None when the
        payload is something else (a plain URL, text, a vCard...).
    """
    if not isinstance(payload, str) or not payload:
        return None

    for pattern in WHATSAPP_URL_PATTERNS:
        m = pattern.search(payload)
        if m:
            return m.group(1)

    trimmed = payload.strip()
    if BARE_PHONE_PATTERN.fullmatch(trimmed):
        return trimmed

    return None


# =========================
# DECODER
# =========================

class DecodeError(Exception):
    """Raised when image data cannot be read at all."""


class QRCodeReader:
    """Decode QR codes with OpenCV's detector."""

    def __init__(self):
        self._detector = cv2.QRCodeDetector()

    def decode(self, pixel_data: bytes, width: int, height: int) -> Optional[str]:
        """Decode an RGBA pixel buffer.

        Args:
            pixel_data: ``width * height * 4`` bytes, row-major RGBA
            width: Image width in pixels
            height: Image height in pixels

        Returns:
            Payload string, or None when no QR code was found
        """
        expected = width * height * 4
        if width <= 0 or height <= 0 or len(pixel_data) != expected:
            raise DecodeError(f"Pixel buffer of {len(pixel_data)} bytes does not match {width}x{height} RGBA")

        rgba = np.frombuffer(pixel_data, dtype=np.uint8).reshape((height, width, 4))
        img = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR)

        text, points, _ = self._detector.detectAndDecode(img)
        if points is None or not text:
            logger.debug("No QR code detected")
            return None
        return text

    def decode_image(self, image_bytes: bytes) -> Optional[str]:
        """Decode an encoded image (PNG, JPEG, ...)."""
        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                img = ImageOps.exif_transpose(img).convert("RGBA")
                width, height = img.size
                pixel_data = img.tobytes()
        except (UnidentifiedImageError, OSError) as e:
            raise DecodeError(f"Cannot read image: {e}") from e

        return self.decode(pixel_data, width, height)


# =========================
# SCAN SESSION
# =========================

class ScanState(Enum):
    IDLE = "idle"
    IMAGE_SELECTED = "image_selected"
    DECODING = "decoding"
    DECODED = "decoded"
    DECODE_FAILED = "decode_failed"
    PHONE_FOUND = "phone_found"
    PHONE_NOT_FOUND = "phone_not_found"


TERMINAL_STATES = frozenset({ScanState.DECODE_FAILED, ScanState.PHONE_FOUND, ScanState.PHONE_NOT_FOUND})


class ScanStateError(RuntimeError):
    """Raised when a session is driven out of order."""


class QRScanSession:
    """One QR scan, from image selection to a phone number (or not)."""

    def __init__(self, reader: Optional[QRCodeReader] = None):
        self.reader = reader or QRCodeReader()
        self.state = ScanState.IDLE
        self.image: Optional[bytes] = None
        self.payload: Optional[str] = None
        self.phone: Optional[str] = None
        self.error: Optional[str] = None

    def select_image(self, image_bytes: bytes) -> None:
        """Select a new image, discarding any previous result."""
        self.image = image_bytes
        self.payload = None
        self.phone = None
        self.error = None
        self.state = ScanState.IMAGE_SELECTED

    def scan(self) -> ScanState:
        """Decode the selected image and extract the phone number."""
        if self.state is not ScanState.IMAGE_SELECTED:
            raise ScanStateError(f"Cannot scan from state {self.state.value}; select an image first")

        self.state = ScanState.DECODING
        try:
            payload = self.reader.decode_image(self.image)
        except DecodeError as e:
            logger.warning(f"QR decode failed: {e}")
            self.error = str(e)
            self.state = ScanState.DECODE_FAILED
            return self.state

        if payload is None:
            self.error = "No QR code found in image"
            self.state = ScanState.DECODE_FAILED
            return self.state

        self.payload = payload
        self.state = ScanState.DECODED

        self.phone = extract_phone_from_payload(payload)
        self.state = ScanState.PHONE_FOUND if self.phone else ScanState.PHONE_NOT_FOUND
        logger.info(f"QR scan finished in state {self.state.value}")
        return self.state

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES
