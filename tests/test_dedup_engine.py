"""
Unit tests for similarity scoring and duplicate detection.
"""
import pytest

from dedup_engine import DEFAULT_THRESHOLD, DedupEngine, edit_distance, similarity
from models import ExistingTestCase


class TestSimilarity:
    """Normalised Levenshtein similarity."""

    def test_identical_strings(self):
        for s in ("a", "Verify login", "x" * 50):
            assert similarity(s, s) == 1.0

    def test_both_empty(self):
        assert similarity("", "") == 1.0

    def test_one_empty(self):
        assert similarity("abc", "") == 0.0

    def test_single_substitution(self):
        assert similarity("abc", "abd") == pytest.approx(2 / 3)

    def test_case_insensitive(self):
        assert similarity("Verify LOGIN", "verify login") == 1.0

    def test_symmetric(self):
        assert similarity("checkout", "check out") == similarity("check out", "checkout")


class TestEditDistance:
    """Classic dynamic-programming edit distance."""

    def test_known_distance(self):
        assert edit_distance("kitten", "sitting") == 3

    def test_insert_and_delete(self):
        assert edit_distance("", "abc") == 3
        assert edit_distance("abc", "") == 3


class TestDedupEngine:
    """Duplicate detection over titles."""

    def setup_method(self):
        """Set up test fixtures."""
        self.engine = DedupEngine()

    def test_default_threshold(self):
        assert self.engine.threshold == DEFAULT_THRESHOLD == 0.85

    def test_find_duplicates_flags_later_title(self):
        results = self.engine.find_duplicates(
            ["Verify login works", "Verify login works!", "Something else entirely"]
        )
        assert [r.is_duplicate for r in results] == [False, True, False]
        assert results[1].matched_id == 1
        assert results[1].matched_title == "Verify login works"
        assert results[1].score >= 0.85

    def test_first_earlier_match_wins(self):
        results = self.engine.find_duplicates(["Check the cart total"] * 3)
        assert results[2].matched_id == 1

    def test_threshold_is_configurable(self):
        titles = ["abcdefghij", "abcdefghzz"]  # similarity 0.8
        assert not DedupEngine(threshold=0.85).find_duplicates(titles)[1].is_duplicate
        assert DedupEngine(threshold=0.75).find_duplicates(titles)[1].is_duplicate

    def test_check_against_existing(self):
        engine = DedupEngine([
            ExistingTestCase(id=3, title="Unrelated scenario"),
            ExistingTestCase(id=7, title="Verify user login"),
        ])
        result = engine.check("verify user login")
        assert result.is_duplicate
        assert result.matched_id == 7

    def test_check_without_match(self):
        engine = DedupEngine([ExistingTestCase(id=7, title="Verify user login")])
        assert not engine.check("Export invoices as PDF").is_duplicate


class TestReviewPortfolio:
    """Linked test-case review."""

    def test_review_flags_design_and_duplicates(self):
        tests = [
            ExistingTestCase(id=1, title="Verify checkout total", state="Design"),
            ExistingTestCase(id=2, title="Verify checkout totals", state="Ready"),
            ExistingTestCase(id=3, title="Profile picture upload", state="Ready"),
        ]
        health = DedupEngine().review_portfolio(tests)

        assert health[0].action_required == "Review Steps & Move to Ready"
        assert not health[0].is_duplicate
        assert health[1].is_duplicate
        assert health[1].duplicate_of_id == 1
        assert health[1].action_required == "Possible Duplicate of 1. Review & Retire."
        assert health[2].action_required == "None"

    def test_empty_portfolio(self):
        assert DedupEngine().review_portfolio([]) == []
