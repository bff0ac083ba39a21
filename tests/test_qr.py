"""
Tests for QR decoding and WhatsApp number extraction.
"""

import io
from unittest.mock import Mock

import cv2
import numpy as np
import pytest
from PIL import Image

from capture.qr import (
    DecodeError,
    QRCodeReader,
    QRScanSession,
    ScanState,
    ScanStateError,
    extract_phone_from_payload,
)


def png_bytes(img: np.ndarray) -> bytes:
    ok, encoded = cv2.imencode(".png", img)
    assert ok
    return encoded.tobytes()


def qr_png(payload: str) -> bytes:
    """Render a payload as a large, clean QR code PNG."""
    code = cv2.QRCodeEncoder.create().encode(payload)
    code = cv2.resize(code, None, fx=10, fy=10, interpolation=cv2.INTER_NEAREST)
    code = cv2.copyMakeBorder(code, 40, 40, 40, 40, cv2.BORDER_CONSTANT, value=255)
    return png_bytes(code)


class TestExtractPhoneFromPayload:
    """Test cases for WhatsApp payload extraction."""

    def test_whatsapp_payloads(self):
        """Test the supported payload shapes."""
        test_cases = [
            ("https://wa.me/35699123456", "35699123456"),
            ("https://wa.me/+35699123456?text=hi", "+35699123456"),
            ("HTTPS://WA.ME/447911123456", "447911123456"),
            ("https://api.whatsapp.com/send?phone=15551234567", "15551234567"),
            ("https://whatsapp.com/send?phone=+15551234567&text=Hello", "+15551234567"),
            ("https://API.WhatsApp.com/send?phone=491701234567", "491701234567"),
            ("+35699123456", "+35699123456"),
            ("  35699123456  ", "35699123456"),
            ("https://example.com/promo", None),
            ("BEGIN:VCARD\nFN:John Smith\nTEL:+35699123456\nEND:VCARD", None),
            ("+123456789", None),           # 9 digits
            ("+1234567890123456", None),    # 16 digits
            ("\u0663\u0665\u0666\u0669\u0669\u0661\u0662\u0663\u0664\u0665\u0666", None),  # Arabic-Indic digits
            ("https://wa.me/\uff13\uff15\uff16\uff19\uff19\uff11\uff12\uff13\uff14\uff15\uff16", None),  # full-width digits
            ("call 35699123456", None),
            ("", None),
            (None, None),
        ]

        for payload, expected in test_cases:
            result = extract_phone_from_payload(payload)
            assert result == expected, f"Failed for: {payload!r}"

    def test_url_shape_checked_before_bare_number(self):
        """Test URL shapes win over the bare-number test."""
        assert extract_phone_from_payload("wa.me/123") == "123"


class TestQRCodeReader:
    """Test cases for QRCodeReader."""

    @pytest.fixture
    def reader(self):
        return QRCodeReader()

    def test_decode_image_round_trip(self, reader):
        """Test a rendered WhatsApp QR code decodes to its payload."""
        payload = "https://wa.me/35699123456"

        assert reader.decode_image(qr_png(payload)) == payload

    def test_decode_blank_image(self, reader):
        """Test an image without a QR code yields None."""
        blank = np.full((200, 200, 3), 255, dtype=np.uint8)

        assert reader.decode_image(png_bytes(blank)) is None

    def test_decode_rgba_buffer(self, reader):
        """Test decoding straight from canvas-style RGBA pixels."""
        payload = "+35699123456"
        img = Image.open(io.BytesIO(qr_png(payload))).convert("RGBA")

        assert reader.decode(img.tobytes(), img.width, img.height) == payload

    def test_decode_unreadable_image(self, reader):
        """Test garbage bytes raise DecodeError."""
        with pytest.raises(DecodeError):
            reader.decode_image(b"not an image")

    def test_decode_buffer_size_mismatch(self, reader):
        """Test a pixel buffer that does not match its dimensions."""
        with pytest.raises(DecodeError):
            reader.decode(b"\x00" * 10, 2, 2)


class TestQRScanSession:
    """Test cases for the scan state machine."""

    @pytest.fixture
    def reader(self):
        return Mock(spec=QRCodeReader)

    def test_initial_state(self, reader):
        """Test a new session is idle."""
        session = QRScanSession(reader)

        assert session.state is ScanState.IDLE
        assert not session.is_finished

    def test_phone_found(self, reader):
        """Test a WhatsApp payload ends in PHONE_FOUND."""
        reader.decode_image.return_value = "https://wa.me/35699123456"
        session = QRScanSession(reader)

        session.select_image(b"image")
        assert session.state is ScanState.IMAGE_SELECTED

        assert session.scan() is ScanState.PHONE_FOUND
        assert session.phone == "35699123456"
        assert session.payload == "https://wa.me/35699123456"
        assert session.is_finished
        reader.decode_image.assert_called_once_with(b"image")

    def test_phone_not_found(self, reader):
        """Test a non-WhatsApp payload is a normal terminal state."""
        reader.decode_image.return_value = "https://example.com/promo"
        session = QRScanSession(reader)
        session.select_image(b"image")

        assert session.scan() is ScanState.PHONE_NOT_FOUND
        assert session.phone is None
        assert session.payload == "https://example.com/promo"
        assert session.error is None

    def test_no_code_is_decode_failed(self, reader):
        """Test an image without a code ends in DECODE_FAILED."""
        reader.decode_image.return_value = None
        session = QRScanSession(reader)
        session.select_image(b"image")

        assert session.scan() is ScanState.DECODE_FAILED
        assert "No QR code" in session.error

    def test_unreadable_image_is_decode_failed(self, reader):
        """Test decoder errors end in DECODE_FAILED."""
        reader.decode_image.side_effect = DecodeError("Cannot read image")
        session = QRScanSession(reader)
        session.select_image(b"image")

        assert session.scan() is ScanState.DECODE_FAILED
        assert session.error == "Cannot read image"

    def test_scan_without_image(self, reader):
        """Test scanning from IDLE is rejected."""
        with pytest.raises(ScanStateError):
            QRScanSession(reader).scan()

    def test_terminal_until_new_image(self, reader):
        """Test terminal states hold until a new image is selected."""
        reader.decode_image.return_value = "https://example.com"
        session = QRScanSession(reader)
        session.select_image(b"first")
        session.scan()

        with pytest.raises(ScanStateError):
            session.scan()

        reader.decode_image.return_value = "+35699123456"
        session.select_image(b"second")
        assert session.state is ScanState.IMAGE_SELECTED
        assert session.payload is None

        assert session.scan() is ScanState.PHONE_FOUND
        assert session.phone == "+35699123456"
