"""
Contact Capture Pipeline
Wires recognition, decoding, field extraction, storage and export together.

FLOW:
1. Card photo -> OCR text -> field extraction -> prefill
2. QR image -> payload -> WhatsApp number -> prefill
3. Form (+ prefill) -> record -> store -> CSV / XLSX export
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .export import EXPORTERS, export_filename, filter_records, submission_stats
from .ocr import ProgressCallback, RecognitionError, TextRecognizer
from .parser import CardTextParser, ExtractionSettings
from .qr import QRCodeReader, QRScanSession, ScanState, extract_phone_from_payload
from .records import ContactRecord
from .store import RecordStore

logger = logging.getLogger(__name__)


class CapturePipeline:
    """Complete pipeline for capturing business contacts.

    Every collaborator can be injected; defaults are EasyOCR, OpenCV's QR
    detector and an in-memory store.
    """

    def __init__(
        self,
        recognizer: Optional[TextRecognizer] = None,
        decoder: Optional[QRCodeReader] = None,
        store: Optional[RecordStore] = None,
        settings: Optional[ExtractionSettings] = None
    ):
        self.recognizer = recognizer or TextRecognizer()
        self.decoder = decoder or QRCodeReader()
        self.store = store if store is not None else RecordStore()
        self.parser = CardTextParser(settings)

        logger.info("CapturePipeline initialized")

    # ======================================================
    # BUSINESS CARD
    # ======================================================

    def process_card_image(self, image_bytes: bytes, progress: Optional[ProgressCallback] = None) -> Dict:
        """
        Recognize a business card photo and extract contact fields.

        Args:
            image_bytes: Encoded card image
            progress: Optional recognition progress callback
        """
        start_time = time.time()

        try:
            recognized = self.recognizer.recognize(image_bytes, progress=progress)
        except RecognitionError as e:
            logger.warning(f"Recognition failed: {e}")
            return {
                "success": False,
                "source": "ocr",
                "error": f"Failed to extract text from image: {e}"
            }

        raw_text = recognized.get("text", "")
        prefill = self.parser.parse(raw_text)

        total_time = time.time() - start_time
        logger.info(f"Card processed in {total_time:.2f}s, fields: {sorted(prefill)}")

        return {
            "success": True,
            "source": "ocr",
            "prefill": prefill,
            "raw_text": raw_text,
            "confidence": recognized.get("confidence", 0.0),
            "processing_time_ms": int(total_time * 1000)
        }

    def process_text(self, text: str) -> Dict:
        """Extract contact fields from already-recognized text (skip OCR)."""
        return {
            "success": True,
            "source": "text",
            "prefill": self.parser.parse(text),
            "raw_text": text
        }

    # ======================================================
    # QR CODE
    # ======================================================

    def process_qr_image(self, image_bytes: bytes) -> Dict:
        """Decode a QR image and look for a WhatsApp number."""
        session = QRScanSession(self.decoder)
        session.select_image(image_bytes)
        state = session.scan()

        if state is ScanState.DECODE_FAILED:
            return {
                "success": False,
                "source": "qr",
                "state": state.value,
                "error": session.error
            }

        prefill = {"whatsapp": session.phone} if session.phone else {}
        return {
            "success": True,
            "source": "qr",
            "state": state.value,
            "payload": session.payload,
            "prefill": prefill
        }

    def process_payload(self, payload: str) -> Dict:
        phone = extract_phone_from_payload(payload)
        return {
            "success": True,
            "source": "qr",
            "state": (ScanState.PHONE_FOUND if phone else ScanState.PHONE_NOT_FOUND).value,
            "payload": payload,
            "prefill": {"whatsapp": phone} if phone else {}
        }

    # ======================================================
    # RECORDS
    # ======================================================

    def submit(self, form: Mapping[str, Any], prefill: Optional[Mapping[str, Any]] = None) -> ContactRecord:
        """Create a record from form input and append it to the store."""
        record = ContactRecord.from_form(form, prefill=prefill)
        return self.store.append(record)

    def list_records(self, **filters) -> List[ContactRecord]:
        return filter_records(self.store.list(), **filters)

    def get_stats(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Counters for the admin dashboard over every stored record."""
        return submission_stats(self.store.list(), now=now)

    def clear_records(self) -> int:
        return self.store.clear()

    def export(self, fmt: str, **filters) -> Tuple[bytes, str, str]:
        """
        Export stored records.

        Args:
            fmt: ``csv`` or ``xlsx``
            **filters: Passed to ``filter_records``

        Returns:
            Tuple of (content bytes, download filename, mimetype)
        """
        if fmt not in EXPORTERS:
            raise ValueError(f"Unsupported export format: {fmt}")
        exporter, mimetype = EXPORTERS[fmt]

        records = self.list_records(**filters)
        content = exporter(records)
        if isinstance(content, str):
            content = content.encode("utf-8")
        return content, export_filename(fmt), mimetype

    # ======================================================
    # STATUS
    # ======================================================

    def get_status(self) -> Dict:
        """Get pipeline status information."""
        return {
            "ocr_engine": "easyocr",
            "ocr_languages": getattr(self.recognizer, "languages", None),
            "ocr_model_loaded": getattr(self.recognizer, "is_loaded", False),
            "qr_decoder": "opencv",
            "records": len(self.store),
            "store_path": str(self.store.path) if self.store.path else None,
            "checked_at": datetime.now(timezone.utc).isoformat()
        }
