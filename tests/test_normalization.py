"""Tests for string normalization utilities."""

from gcontact_alpine.utils.normalization import normalize_email, normalize_string


class TestNormalizeString:
    """Tests for normalize_string."""

    def test_empty_string(self):
        """Empty input gives empty output."""
        assert normalize_string("") == ""

    def test_lowercases(self):
        """Output is case-folded."""
        assert normalize_string("John DOE") == "johndoe"

    def test_removes_accents(self):
        """Accents are stripped."""
        assert normalize_string("José Müller") == "josemuller"

    def test_strips_punctuation(self):
        """Punctuation is removed."""
        assert normalize_string("O'Brien-Smith, Jr.") == "obriensmithjr"

    def test_sort_words_ignores_order(self):
        """Sorted words make "Doe, John" and "John Doe" equal."""
        assert normalize_string("Doe, John", sort_words=True) == normalize_string(
            "John Doe", sort_words=True
        )

    def test_sort_words_keeps_word_boundaries(self):
        """Sorted keys keep "ab c" and "a bc" apart."""
        assert normalize_string("ab c", sort_words=True) != normalize_string(
            "a bc", sort_words=True
        )
        assert normalize_string("Doe, John", sort_words=True) == "doe john"

    def test_keeps_cjk_names(self):
        """Non-latin letters are kept rather than dropped."""
        assert normalize_string("山田 太郎") == "山田太郎"

    def test_keeps_voiced_marks(self):
        """Japanese voiced marks are not treated as accents."""
        assert normalize_string("ガイ") != normalize_string("カイ")
        assert normalize_string("ガイ") == "ガイ"

    def test_keep_spaces(self):
        """remove_spaces=False collapses whitespace to a single space."""
        assert normalize_string("  John    Doe ", remove_spaces=False) == "john doe"

    def test_email_chars_preserved(self):
        """allow_email_chars keeps @ and dots."""
        assert (
            normalize_string("John.Doe@Example.com", allow_email_chars=True)
            == "john.doe@example.com"
        )

    def test_no_punctuation_stripping(self):
        """strip_punctuation=False only normalizes case and whitespace."""
        assert normalize_string("A-B", strip_punctuation=False) == "a-b"


class TestNormalizeEmail:
    """Tests for normalize_email."""

    def test_trims_and_casefolds(self):
        """Whitespace is trimmed and case is folded."""
        assert normalize_email("  John@Example.COM ") == "john@example.com"

    def test_empty(self):
        """Empty input gives empty output."""
        assert normalize_email("") == ""
