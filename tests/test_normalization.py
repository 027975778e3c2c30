"""Tests for name normalization and search keywords."""

from tourdesk.normalization import (
    generate_keywords,
    keyword_list,
    matches_search,
    normalize,
    remove_diacritics,
)


class TestNormalize:
    """Comparison keys."""

    def test_diacritic_and_case_variants_share_a_key(self):
        """Test that Vietnamese variants collide."""
        assert normalize("Đà Nẵng") == normalize("da nang") == "da nang"
        assert normalize("Hà Nội") == normalize("HA NOI")

    def test_trims_whitespace(self):
        assert normalize("  Huế  ") == "hue"

    def test_folds_d_with_stroke(self):
        assert remove_diacritics("Đường Đông") == "Duong Dong"


class TestGenerateKeywords:
    """Search token generation."""

    def test_multi_word_name(self):
        """Test full name, words and initials tokens."""
        assert generate_keywords("Ha Long Bay") == {"halongbay", "ha", "long", "bay", "hlb"}

    def test_single_word_has_no_initials(self):
        assert generate_keywords("Huế") == {"hue"}

    def test_single_letter_words_are_skipped(self):
        assert generate_keywords("A B") == {"ab"}

    def test_blank_name(self):
        assert generate_keywords("   ") == set()

    def test_is_stable(self):
        """Test that keywords do not depend on call history or diacritics."""
        first = generate_keywords("Nguyễn Hồng Phúc")
        assert generate_keywords("Nguyễn Hồng Phúc") == first
        assert generate_keywords("nguyen hong phuc") == first

    def test_keyword_list_is_sorted(self):
        assert keyword_list("Tonkin Travel") == ["tonkin", "tonkintravel", "travel", "tt"]


class TestMatchesSearch:
    """Free-text matching against names and keywords."""

    def test_blank_search_matches_everything(self):
        assert matches_search("Anything", [], None)
        assert matches_search("Anything", [], "   ")

    def test_substring_of_normalized_name(self):
        assert matches_search("Hội An Ancient Town", [], "hoi an")

    def test_substring_of_keyword(self):
        keywords = keyword_list("Ha Long Bay")
        assert matches_search("Ha Long Bay", keywords, "hlb")
        # Only the space-less full-name token contains this
        assert matches_search("Ha Long Bay", keywords, "longb")
        assert matches_search("Ha Long Bay", keywords, "HALONG")

    def test_no_match(self):
        assert not matches_search("Huế", keyword_list("Huế"), "saigon")
