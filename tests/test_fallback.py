"""Tests for the heuristic text parser."""

import pytest

from card_ocr.fallback import parse_contact_text

CARD_TEXT = """Jane Doe
Senior Developer
Acme Technologies Inc
+1 (555) 123-4567
jane.doe@acme.com
123 Main Street, Suite 400
Springfield, IL 62704"""


class TestParseContactText:
    """Test parse_contact_text heuristics."""

    def test_full_card(self):
        """Test every field is found on a typical card."""
        contact = parse_contact_text(CARD_TEXT)

        assert contact.name == "Jane Doe"
        assert contact.services == "Senior Developer"
        assert contact.company == "Acme Technologies Inc"
        assert contact.phone == "+15551234567"
        assert contact.email == "jane.doe@acme.com"
        assert contact.address == "123 Main Street, Suite 400, Springfield, IL 62704"

    def test_windows_line_endings(self):
        """Test CRLF line endings parse like LF."""
        contact = parse_contact_text(CARD_TEXT.replace("\n", "\r\n"))
        assert contact.name == "Jane Doe"
        assert contact.email == "jane.doe@acme.com"

    def test_international_phone(self):
        """Test a spaced international number keeps its plus sign."""
        contact = parse_contact_text("Tel: +44 20 7946 0958")
        assert contact.phone == "+442079460958"

    def test_long_digit_run(self):
        """Test a long digit run keeps its leading zero."""
        contact = parse_contact_text("Mobile 09171234567")
        assert contact.phone == "09171234567"

    def test_street_number_is_not_phone(self):
        """Test short numbers are not mistaken for phone numbers."""
        contact = parse_contact_text("Main Office\n42 Baker Street")

        assert contact.phone is None
        assert contact.address == "42 Baker Street"

    def test_phone_line_not_in_address(self):
        """Test the phone line is not mistaken for an address."""
        contact = parse_contact_text("John Smith\n555-123-4567\n10 Downing Street")

        assert contact.phone == "5551234567"
        assert contact.address == "10 Downing Street"

    def test_name_with_middle_initial(self):
        """Test a name with a middle initial is recognized."""
        contact = parse_contact_text("Mary J. Watson\nmary@example.org")
        assert contact.name == "Mary J. Watson"

    def test_name_fallback_single_word(self):
        """Test a short alphabetic line is used when no full name matches."""
        contact = parse_contact_text("madonna\nmadonna@example.com")
        assert contact.name == "madonna"

    def test_company_without_indicator(self):
        """Test a long capitalized line is taken as the company."""
        contact = parse_contact_text("Jane Doe\nNorthwind Traders & Co")
        assert contact.company == "Northwind Traders & Co"

    @pytest.mark.parametrize("text", ["", None, "   \n\n  ", "Thank you!", "!!! ###"])
    def test_nothing_found(self, text):
        """Test unusable input yields an empty contact instead of raising."""
        assert parse_contact_text(text).is_empty

    def test_never_emits_null_strings(self):
        """Test a literal null line is not used as a name."""
        contact = parse_contact_text("null\nnull@x.com")
        assert contact.name is None
        assert contact.email == "null@x.com"
