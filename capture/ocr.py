"""
Business card text recognition with EasyOCR.
"""
import logging
import os
import re
from typing import Callable, Dict, List, Optional

import cv2
import numpy as np

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Dict], None]

MIN_CONFIDENCE = 0.15


class RecognitionError(Exception):
    """Raised when an image cannot be turned into text."""


class TextRecognizer:
    """EasyOCR-backed recognizer for business card photos."""

    def __init__(
        self,
        languages: List[str] = None,
        gpu: bool = False,
        model_dir: str = "./models",
        max_dimension: int = 1600,
        enhance: bool = True
    ):
        """
        Initialize the recognizer. The EasyOCR model is loaded on first use.

        Args:
            languages: EasyOCR language codes
            gpu: Use GPU for OCR
            model_dir: Directory for model storage
            max_dimension: Target width images are resized towards
            enhance: Run denoise/contrast/sharpen before recognition
        """
        self.languages = languages or ["en"]
        self.gpu = gpu
        self.model_dir = model_dir
        self.max_dimension = max_dimension
        self.enhance = enhance
        self._reader = None

        # Known OCR confusions on cards
        self.word_corrections = {
            "c0m": "com",
            "cQm": "com",
            "1nc": "Inc",
            "L1C": "LLC",
            "11C": "LLC",
            "So1utions": "Solutions",
            "Techno1ogies": "Technologies",
            "G1oba1": "Global",
            "Digita1": "Digital",
            "Emai1": "Email",
        }

    @property
    def is_loaded(self) -> bool:
        return self._reader is not None

    def _get_reader(self):
        if self._reader is None:
            import easyocr

            os.makedirs(self.model_dir, exist_ok=True)
            logger.info(f"Initializing EasyOCR with languages: {self.languages}")
            self._reader = easyocr.Reader(
                lang_list=self.languages,
                gpu=self.gpu,
                model_storage_directory=self.model_dir,
                download_enabled=True,
                verbose=False
            )
            logger.info("EasyOCR initialized successfully")
        return self._reader

    def _load_image(self, image_bytes: bytes) -> np.ndarray:
        arr = np.frombuffer(image_bytes, dtype=np.uint8)
        img = cv2.imdecode(arr, cv2.IMREAD_COLOR) if arr.size else None
        if img is None:
            raise RecognitionError("Cannot read image data")
        return img

    def _preprocess_image(self, img: np.ndarray) -> np.ndarray:
        """
        Resize and clean up a card photo for recognition.

        Args:
            img: BGR image

        Returns:
            Preprocessed image (grayscale when enhancing)
        """
        h, w = img.shape[:2]
        if w < self.max_dimension:
            scale = self.max_dimension / w
            img = cv2.resize(img, (self.max_dimension, int(h * scale)), interpolation=cv2.INTER_CUBIC)
        elif w > self.max_dimension * 1.5:
            scale = (self.max_dimension * 1.5) / w
            img = cv2.resize(img, (int(w * scale), int(h * scale)), interpolation=cv2.INTER_AREA)

        logger.debug(f"Resized from {w}x{h} to {img.shape[1]}x{img.shape[0]}")

        if not self.enhance:
            return img

        gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        gray = cv2.fastNlMeansDenoising(gray, None, h=8, templateWindowSize=7, searchWindowSize=21)

        clahe = cv2.createCLAHE(clipLimit=3.0, tileGridSize=(12, 12))
        gray = clahe.apply(gray)

        # unsharp mask
        blurred = cv2.GaussianBlur(gray, (0, 0), 1.0)
        gray = cv2.addWeighted(gray, 1.5, blurred, -0.5, 0)
        return gray

    def _correct_ocr_text(self, text: str) -> str:
        """
        Fix common character confusions without touching numbers.

        Args:
            text: Raw OCR line

        Returns:
            Corrected line
        """
        for wrong, correct in self.word_corrections.items():
            text = re.sub(re.escape(wrong), correct, text, flags=re.IGNORECASE)

        # 1 between letters is almost always an l ("b1ue" -> "blue")
        text = re.sub(r"([a-zA-Z])1([a-zA-Z])", r"\1l\2", text)
        # 0 between letters is an o ("s0lutions" -> "solutions")
        text = re.sub(r"([a-zA-Z])0([a-zA-Z])", r"\1o\2", text)

        # Email domains split by the detector ("acme . com")
        text = re.sub(r"@(\w+)\s*\.\s*com\b", r"@\1.com", text, flags=re.IGNORECASE)

        return " ".join(text.split())

    def _postprocess_lines(self, lines: List[str]) -> List[str]:
        cleaned_lines = []
        for line in lines:
            line = self._correct_ocr_text(line)
            if len(line) > 1:
                # drop fragments that are mostly symbols
                char_count = len([c for c in line if c.isalnum()])
                if char_count / len(line) > 0.5:
                    cleaned_lines.append(line)
        return cleaned_lines

    def recognize(self, image_bytes: bytes, progress: Optional[ProgressCallback] = None) -> Dict:
        """
        Recognize the text on a card image.

        Args:
            image_bytes: Encoded image (PNG, JPEG, ...)
            progress: Optional callback receiving ``{"status", "progress"}``

        Returns:
            Dictionary with ``text``, ``confidence`` and ``lines``
        """
        def report(status: str, value: float) -> None:
            if progress is not None:
                progress({"status": status, "progress": value})

        try:
            report("loading model", 0.0)
            reader = self._get_reader()
            report("loading model", 1.0)

            report("preprocessing image", 0.0)
            img = self._preprocess_image(self._load_image(image_bytes))
            report("preprocessing image", 1.0)

            report("recognizing text", 0.0)
            results = reader.readtext(img, detail=1, paragraph=False)
            report("recognizing text", 1.0)
        except RecognitionError:
            raise
        except Exception as e:
            logger.error(f"OCR extraction error: {e}", exc_info=True)
            raise RecognitionError(str(e)) from e

        # top-left Y gives reading order
        results = sorted(results, key=lambda r: r[0][0][1])

        lines = []
        confidences = []
        for bbox, text, confidence in results:
            text = text.strip()
            if confidence >= MIN_CONFIDENCE and len(text) >= 2:
                lines.append(text)
                confidences.append(confidence)

        cleaned_lines = self._postprocess_lines(lines)

        if confidences:
            weights = [len(line) for line in lines]
            avg_confidence = sum(c * w for c, w in zip(confidences, weights)) / sum(weights)
        else:
            avg_confidence = 0.0

        report("done", 1.0)
        logger.info(f"Recognized {len(cleaned_lines)} lines with {avg_confidence:.2%} confidence")

        return {
            "text": "\n".join(cleaned_lines),
            "confidence": avg_confidence,
            "lines": cleaned_lines
        }
