"""
Source package initialization for the Contact Capture service.
"""

from .parser import CardTextParser, ExtractionSettings, extract_from_text
from .qr import QRCodeReader, QRScanSession, ScanState, extract_phone_from_payload
from .ocr import TextRecognizer, RecognitionError
from .records import ContactRecord, Relevancy
from .store import RecordStore
from .export import ExportError, to_delimited_text, to_spreadsheet_binary
from .pipeline import CapturePipeline

__all__ = [
    "CardTextParser",
    "ExtractionSettings",
    "extract_from_text",
    "QRCodeReader",
    "QRScanSession",
    "ScanState",
    "extract_phone_from_payload",
    "TextRecognizer",
    "RecognitionError",
    "ContactRecord",
    "Relevancy",
    "RecordStore",
    "ExportError",
    "to_delimited_text",
    "to_spreadsheet_binary",
    "CapturePipeline"
]
