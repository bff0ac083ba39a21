"""
Business card text parser.

Turns the raw text recognized on a business card into a sparse contact
fragment (email, phone, first/last name, company) using ordered heuristics.
"""

import re
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


DEFAULT_COMPANY_KEYWORDS: Tuple[str, ...] = (
    # legal-entity suffixes
    "LLC", "Inc", "Corp", "Ltd", "Limited", "GmbH", "PLC", "Company",
    # sector words
    "Solutions", "Group", "Technologies", "Services", "Consulting",
    "Partners", "Holdings", "Industries", "Systems", "Software", "Digital",
    "Enterprises", "International",
)


# =========================
# SETTINGS
# =========================

@dataclass(frozen=True)
class ExtractionSettings:
    """Tunable thresholds for the card heuristics.

    Length bounds are exclusive and measured on the trimmed line.
    """
    name_min_length: int = 2
    name_max_length: int = 50
    name_max_tokens: int = 4
    company_min_length: int = 3
    company_max_length: int = 100
    company_keywords: Tuple[str, ...] = DEFAULT_COMPANY_KEYWORDS


EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

# Most specific first. Separators are limited to space, tab, dot and hyphen
# so a match never runs across a line break. Digits are ASCII 0-9 only.
PHONE_PATTERNS: Tuple[Tuple[str, "re.Pattern[str]"], ...] = (
    ("international", re.compile(r"\+\d{1,3}[ \t.-]?\(?\d{1,4}\)?(?:[ \t.-]?\d{2,4}){2,4}", re.ASCII)),
    ("north_american", re.compile(r"\(\d{3}\)[ \t.-]?\d{3}[ \t.-]?\d{4}", re.ASCII)),
    ("grouped", re.compile(r"\b\d{3}[ \t.-]\d{3}[ \t.-]\d{4}\b", re.ASCII)),
    ("plus_digits", re.compile(r"\+\d{10,15}\b", re.ASCII)),
)

# exactly two alphabetic tokens, accented letters included
TWO_WORD_NAME_PATTERN = re.compile(r"[^\W\d_]+\s+[^\W\d_]+")


# =========================
# PARSER
# =========================

class CardTextParser:
    """Stateless heuristics over business card text.

    Every stage is a pure function of its input, so a single instance can be
    shared between concurrent requests.
    """

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()
        self._keywords = tuple(k.lower() for k in self.settings.company_keywords)

    # =========================
    # PIPELINE API
    # =========================

    def parse(self, raw_text: Optional[str]) -> Dict[str, str]:
        """Extract whatever contact fields the text supports.

        Args:
            raw_text: Multi-line text from the recognizer

        Returns:
            Dict with any of ``email``, ``phone``, ``first_name``,
            ``last_name`` and ``company_name``. Fields that could not be
            inferred are left out.
        """
        if not isinstance(raw_text, str) or not raw_text.strip():
            return {}

        lines = [line.strip() for line in raw_text.splitlines() if line.strip()]
        result: Dict[str, str] = {}

        email = self.extract_email(raw_text)
        if email:
            result["email"] = email

        phone = self.extract_phone(raw_text)
        if phone:
            result["phone"] = phone

        first_name, last_name = self.extract_name(lines)
        if first_name:
            result["first_name"] = first_name
        if last_name:
            result["last_name"] = last_name

        company = self.extract_company(lines)
        if company:
            result["company_name"] = company

        logger.debug(f"Extracted fields {sorted(result)} from {len(lines)} lines")
        return result

    # =========================
    # EMAIL / PHONE
    # =========================

    def extract_email(self, text: str) -> Optional[str]:
        """First email address in document order."""
        m = EMAIL_PATTERN.search(text)
        return m.group(0) if m else None

    def match_phone(self, text: str) -> Optional[Tuple[str, str]]:
        """Return ``(family, match)`` for the first pattern family that hits."""
        for family, pattern in PHONE_PATTERNS:
            m = pattern.search(text)
            if m:
                return family, m.group(0)
        return None

    def extract_phone(self, text: str) -> Optional[str]:
        matched = self.match_phone(text)
        return matched[1] if matched else None

    def _has_contact_info(self, line: str) -> bool:
        return bool(EMAIL_PATTERN.search(line)) or self.match_phone(line) is not None

    # =========================
    # NAME
    # =========================

    def is_name_candidate(self, line: str) -> bool:
        line = line.strip()
        s = self.settings
        if not s.name_min_length < len(line) < s.name_max_length:
            return False
        if self._has_contact_info(line):
            return False
        # letters, whitespace, periods and hyphens only
        if not all(ch.isalpha() or ch.isspace() or ch in ".-" for ch in line):
            return False
        return len(line.split()) <= s.name_max_tokens

    def extract_name(self, lines: List[str]) -> Tuple[Optional[str], Optional[str]]:
        """Split the first name-shaped line into first and last name."""
        for line in lines:
            if not self.is_name_candidate(line):
                continue
            tokens = line.split()
            if len(tokens) >= 2:
                return tokens[0], " ".join(tokens[1:])
            return tokens[0], None
        return None, None

    # =========================
    # COMPANY
    # =========================

    def has_company_keyword(self, line: str) -> bool:
        lower = line.lower()
        return any(keyword in lower for keyword in self._keywords)

    def is_company_fallback(self, line: str) -> bool:
        line = line.strip()
        s = self.settings
        if not s.company_min_length < len(line) < s.company_max_length:
            return False
        if self._has_contact_info(line):
            return False
        if TWO_WORD_NAME_PATTERN.fullmatch(line):
            return False
        return any(ch.isupper() for ch in line)

    def extract_company(self, lines: List[str]) -> Optional[str]:
        """Keyword-bearing line first, then the first plausible fallback line."""
        for line in lines:
            if self.has_company_keyword(line):
                return line.strip()

        for line in lines:
            if self.is_company_fallback(line):
                return line.strip()

        return None


_default_parser = CardTextParser()


def extract_from_text(raw_text: Optional[str], settings: Optional[ExtractionSettings] = None) -> Dict[str, str]:
    """Parse card text with the default (or given) settings."""
    parser = _default_parser if settings is None else CardTextParser(settings)
    return parser.parse(raw_text)
