"""
Tests for CardTextParser.

Tests the parsing of OCR text into sparse contact fields.
"""

import pytest
from capture.parser import (
    CardTextParser,
    ExtractionSettings,
    DEFAULT_COMPANY_KEYWORDS,
    extract_from_text,
)


SAMPLE_CARD = "John Smith\njohn@acme.com\n+1 555 123 4567\nAcme Solutions LLC"


class TestCardTextParser:
    """Test cases for CardTextParser."""

    @pytest.fixture
    def parser(self):
        """Create parser instance."""
        return CardTextParser()

    def test_parse_full_card(self, parser):
        """Test parsing a complete business card."""
        result = parser.parse(SAMPLE_CARD)

        assert result == {
            "email": "john@acme.com",
            "phone": "+1 555 123 4567",
            "first_name": "John",
            "last_name": "Smith",
            "company_name": "Acme Solutions LLC",
        }

    def test_full_card_phone_uses_international_family(self, parser):
        """Test the sample phone is matched by the leading-plus family."""
        assert parser.match_phone(SAMPLE_CARD) == ("international", "+1 555 123 4567")

    @pytest.mark.parametrize("text", ["", "   ", "\n\n\t\n", None])
    def test_parse_empty_text(self, parser, text):
        """Test empty or whitespace-only input yields an empty result."""
        assert parser.parse(text) == {}

    def test_parse_is_deterministic(self, parser):
        """Test repeated parsing returns identical results."""
        text = "Jane Doe\nGlobex Holdings\njane@globex.io\n(555) 987-6543"

        assert parser.parse(text) == parser.parse(text)
        assert extract_from_text(text) == parser.parse(text)

    def test_absent_fields_are_omitted(self, parser):
        """Test fields that cannot be inferred are left out entirely."""
        result = parser.parse("john@acme.com")

        assert result == {"email": "john@acme.com"}
        assert "phone" not in result
        assert "first_name" not in result


class TestEmailExtraction:
    """Email detection over the whole text."""

    @pytest.fixture
    def parser(self):
        return CardTextParser()

    def test_extract_email(self, parser):
        """Test email extraction."""
        test_cases = [
            ("Contact: john.doe@example.com", "john.doe@example.com"),
            ("Email: test@company.org", "test@company.org"),
            ("No email here", None),
            ("user.name+tag@domain.co.uk", "user.name+tag@domain.co.uk"),
            ("broken@domain.c", None),
            ("first@a.com second@b.com", "first@a.com"),
        ]

        for text, expected in test_cases:
            result = parser.extract_email(text)
            assert result == expected, f"Failed for: {text}"

    def test_email_spanning_lines_found(self, parser):
        """Test email is found regardless of which line holds it."""
        result = parser.parse("Acme Corp\n\nSales\nsales@acme.com")

        assert result["email"] == "sales@acme.com"

    def test_no_email_shaped_text(self, parser):
        """Test text without an email leaves the field unset."""
        for text in ["John Smith", "at acme dot com", "@handle", "name@", "555-123-4567"]:
            assert "email" not in parser.parse(text), f"Failed for: {text}"


class TestPhoneExtraction:
    """Ordered phone pattern families, first family with a match wins."""

    @pytest.fixture
    def parser(self):
        return CardTextParser()

    def test_extract_phone(self, parser):
        """Test phone number extraction."""
        test_cases = [
            ("Call: 555-123-4567", "555-123-4567"),
            ("Phone: (555) 123-4567", "(555) 123-4567"),
            ("+1 555 123 4567", "+1 555 123 4567"),
            ("+44 20 7946 0958", "+44 20 7946 0958"),
            ("No phone here", None),
            ("Room 12", None),
            ("Call \u0665\u0665\u0665-\u0661\u0662\u0663-\u0664\u0665\u0666\u0667", None),  # Arabic-Indic digits
            ("\uff15\uff15\uff15-\uff11\uff12\uff13-\uff14\uff15\uff16\uff17", None),  # full-width digits
        ]

        for text, expected in test_cases:
            result = parser.extract_phone(text)
            assert result == expected, f"Failed for: {text}"

    def test_families_short_circuit(self, parser):
        """Test a higher-priority family wins even when it appears later."""
        text = "Office 555-111-2222\nMobile +356 9912 3456"

        family, match = parser.match_phone(text)

        assert family == "international"
        assert match == "+356 9912 3456"

    def test_parenthesized_before_bare_groups(self, parser):
        """Test the parenthesized family outranks bare groups."""
        text = "Fax 555-111-2222\nTel (555) 333-4444"

        assert parser.match_phone(text) == ("north_american", "(555) 333-4444")

    def test_bare_groups_first_match(self, parser):
        """Test the first match of the winning family is used."""
        text = "555-111-2222\n555.333.4444"

        assert parser.extract_phone(text) == "555-111-2222"

    def test_phone_does_not_cross_lines(self, parser):
        """Test a match stays on its own line."""
        result = parser.extract_phone("+1 555 123 4567\n2024 Annual Report")

        assert result == "+1 555 123 4567"


class TestNameExtraction:
    """Name candidate selection."""

    @pytest.fixture
    def parser(self):
        return CardTextParser()

    def test_split_name(self, parser):
        """Test name splitting."""
        test_cases = [
            (["John Doe"], ("John", "Doe")),
            (["Cher"], ("Cher", None)),
            (["John Michael Doe"], ("John", "Michael Doe")),
            (["Mary-Jane St. Claire"], ("Mary-Jane", "St. Claire")),
            ([], (None, None)),
        ]

        for lines, expected in test_cases:
            result = parser.extract_name(lines)
            assert result == expected, f"Failed for: {lines}"

    def test_digit_disqualifies_name(self, parser):
        """Test a line with a digit is never a name candidate."""
        assert not parser.is_name_candidate("Agent 007")

        result = parser.parse("Agent 007\nJames Bond")
        assert result["first_name"] == "James"
        assert result["last_name"] == "Bond"

    def test_name_candidate_rules(self, parser):
        """Test the individual name candidate constraints."""
        test_cases = [
            ("Jo", False),                      # too short
            ("Ann", True),
            ("A" * 49, True),
            ("A" * 50, False),                  # too long
            ("One Two Three Four", True),
            ("One Two Three Four Five", False),  # too many tokens
            ("Smith, John", False),             # comma
            ("john@acme.com", False),
            ("555-123-4567", False),
            ("  Jane Doe  ", True),             # trimmed before checks
        ]

        for line, expected in test_cases:
            assert parser.is_name_candidate(line) is expected, f"Failed for: {line!r}"

    def test_first_candidate_wins(self, parser):
        """Test candidates are taken in top-to-bottom order."""
        result = parser.parse("john@acme.com\nJane Roe\nJohn Doe")

        assert result["first_name"] == "Jane"
        assert result["last_name"] == "Roe"

    def test_no_name_candidate(self, parser):
        """Test both name fields stay unset without a candidate."""
        result = parser.parse("john@acme.com\n+1 555 123 4567\n123 Main St, Suite 4")

        assert "first_name" not in result
        assert "last_name" not in result

    def test_single_token_name(self, parser):
        """Test a single token fills only the first name."""
        result = parser.parse("Madonna\nmadonna@example.com")

        assert result["first_name"] == "Madonna"
        assert "last_name" not in result


class TestCompanyExtraction:
    """Keyword pass, then fallback pass."""

    @pytest.fixture
    def parser(self):
        return CardTextParser()

    def test_extract_company_with_keyword(self, parser):
        """Test company extraction with company keyword."""
        lines = [
            "John Doe",
            "Tech Solutions Inc.",
            "Software Engineer"
        ]

        assert parser.extract_company(lines) == "Tech Solutions Inc."

    def test_keyword_match_is_case_insensitive(self, parser):
        """Test keywords match regardless of case."""
        assert parser.extract_company(["ACME TECHNOLOGIES"]) == "ACME TECHNOLOGIES"
        assert parser.extract_company(["widgets gmbh"]) == "widgets gmbh"

    def test_keyword_line_beats_earlier_fallback_line(self, parser):
        """Test the keyword pass runs over all lines before the fallback."""
        lines = ["Quantum Retail", "Jane Roe", "Northwind Group"]

        assert parser.extract_company(lines) == "Northwind Group"

    def test_company_fallback(self):
        """Test fallback picks a capitalized multi-word line."""
        settings = ExtractionSettings(
            company_keywords=tuple(k for k in DEFAULT_COMPANY_KEYWORDS if k != "Partners")
        )
        parser = CardTextParser(settings)

        result = parser.parse("John Smith\nQuantum Retail Partners\njohn@quantum.com")

        assert result["company_name"] == "Quantum Retail Partners"
        assert result["first_name"] == "John"

    def test_quantum_retail_partners_default_settings(self, parser):
        """Test the same line is chosen with the default keyword list."""
        result = parser.parse("John Smith\nQuantum Retail Partners")

        assert result["company_name"] == "Quantum Retail Partners"

    def test_fallback_rules(self, parser):
        """Test the individual fallback constraints."""
        test_cases = [
            ("ABC", False),               # too short
            ("Wxyz", True),
            ("Jane Doe", False),          # plain two-word name shape
            ("José García", False),
            ("lowercase words only", False),
            ("info@acme.com", False),
            ("Tel 555-123-4567", False),
            ("X" * 99, True),
            ("X" * 100, False),           # too long
            ("Blue Harbor Cafe", True),
        ]

        for line, expected in test_cases:
            assert parser.is_company_fallback(line) is expected, f"Failed for: {line!r}"

    def test_accented_name_is_not_company(self, parser):
        """Test an accented two-word name is not reused as the company."""
        result = parser.parse("José García\nhello there")

        assert result == {"first_name": "José", "last_name": "García"}

    def test_no_company(self, parser):
        """Test company stays unset when nothing qualifies."""
        result = parser.parse("Jane Doe\njane@example.com\nmobile")

        assert "company_name" not in result


class TestExtractionSettings:
    """Thresholds are configuration."""

    def test_custom_name_bounds(self):
        """Test tighter name limits change candidate selection."""
        parser = CardTextParser(ExtractionSettings(name_max_tokens=2))

        result = parser.parse("John Michael Doe\nJane Roe")

        assert result["first_name"] == "Jane"

    def test_custom_keywords(self):
        """Test extra keywords are honoured."""
        settings = ExtractionSettings(company_keywords=DEFAULT_COMPANY_KEYWORDS + ("Bakery",))

        result = extract_from_text("Jane Roe\nsunrise bakery", settings=settings)

        assert result["company_name"] == "sunrise bakery"
