"""Tests for shared utility functions."""

from booking_orchestrator.utils import (
    casefold_equal,
    normalize_phone,
    split_name,
    suggest_name,
    title_case,
    words_to_digits,
)


class TestNormalizePhone:
    def test_strips_separators(self):
        assert normalize_phone("(555) 010-9999", "US") == "+15550109999"

    def test_preserves_leading_plus(self):
        assert normalize_phone("+61 412 345 678") == "+61412345678"

    def test_mixed_separators(self):
        assert normalize_phone("+61 (412) 345-678") == "+61412345678"

    def test_national_number_uses_default_region(self):
        assert normalize_phone("0412 345 678", "AU") == "+61412345678"

    def test_spoken_digits(self):
        assert normalize_phone("five five five, zero one zero, nine nine nine nine") == (
            "+15550109999"
        )

    def test_strips_whitespace(self):
        assert normalize_phone("  5550109999  ", "US") == "+15550109999"

    def test_unparseable_falls_back_to_digits(self):
        assert normalize_phone("12", "US") == "+12"


class TestWordsToDigits:
    def test_spoken_words(self):
        assert words_to_digits("five five five, one two three") == "555123"

    def test_oh_is_zero(self):
        assert words_to_digits("four oh four") == "404"

    def test_digits_pass_through(self):
        assert words_to_digits("555-0100") == "5550100"


class TestNames:
    def test_split_name(self):
        assert split_name("  Jamie  Lee Rivera ") == ("Jamie", "Lee Rivera")

    def test_split_single_name(self):
        assert split_name("Jamie") == ("Jamie", "")

    def test_split_empty(self):
        assert split_name("   ") == ("", "")

    def test_title_case(self):
        assert title_case("deep TISSUE massage") == "Deep Tissue Massage"

    def test_casefold_equal(self):
        assert casefold_equal(" Facial ", "facial")
        assert not casefold_equal(None, "facial")


class TestSuggestName:
    def test_containment_wins(self):
        assert suggest_name("deluxe", ["Couples Retreat", "Deluxe Spa Day"]) == "Deluxe Spa Day"

    def test_fuzzy_match(self):
        assert suggest_name("Anne", ["Anna Lee", "Ben Ortiz"]) == "Anna Lee"

    def test_no_plausible_match(self):
        assert suggest_name("Zzz", ["Anna Lee", "Ben Ortiz"]) is None

    def test_empty_inputs(self):
        assert suggest_name("", ["Anna Lee"]) is None
        assert suggest_name("Anna", []) is None
