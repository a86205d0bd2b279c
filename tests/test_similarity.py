"""Tests for edit-distance similarity."""

from backend.srs.similarity import accuracy, edit_distance, normalize_for_similarity


class TestEditDistance:
    def test_identical(self) -> None:
        assert edit_distance("kitten", "kitten") == 0

    def test_classic_example(self) -> None:
        assert edit_distance("kitten", "sitting") == 3

    def test_empty_side(self) -> None:
        assert edit_distance("", "abc") == 3
        assert edit_distance("abc", "") == 3

    def test_symmetric(self) -> None:
        assert edit_distance("flaw", "lawn") == edit_distance("lawn", "flaw")

    def test_whitespace_substitution_is_free(self) -> None:
        assert edit_distance("a b", "axb") == 0
        assert edit_distance("ab", "a b") == 1  # Insertion still costs


class TestAccuracy:
    def test_exact_match(self) -> None:
        assert accuracy("Hello", "Hello") == 100

    def test_one_substitution(self) -> None:
        assert accuracy("Hello", "Hallo") == 80

    def test_case_and_surrounding_whitespace_ignored(self) -> None:
        assert accuracy("Hello", "  hello ") == 100

    def test_both_empty_scores_zero(self) -> None:
        assert accuracy("", "") == 0
        assert accuracy("   ", "") == 0

    def test_empty_attempt_scores_zero(self) -> None:
        assert accuracy("Hello", "") == 0

    def test_score_is_floored(self) -> None:
        # 1 edit over 3 characters: 66.67 floors to 66
        assert accuracy("cat", "cut") == 66

    def test_completely_different(self) -> None:
        assert accuracy("abc", "xyz") == 0

    def test_range(self) -> None:
        for a, b in [("a", "abcdefgh"), ("hello world", "world"), ("x", "y")]:
            assert 0 <= accuracy(a, b) <= 100

    def test_normalize(self) -> None:
        assert normalize_for_similarity("  MiXeD ") == "mixed"
