"""Tests for include/exclude key filtering."""

from hypothesis import given, strategies as st

from validation.filters import filter_key_map, filter_keys, pattern_matches


KEYS = {"login_button", "login_field", "email_field", "debug_overlay", "item_"}


class TestPatternMatching:
    """Tests for single-pattern matching."""

    def test_regex_search_anywhere(self):
        """Test patterns are searched, not anchored."""
        assert pattern_matches("button", "login_button")
        assert pattern_matches("^login", "login_button")
        assert not pattern_matches("^button", "login_button")

    def test_invalid_regex_falls_back_to_substring(self):
        """Test an invalid regex is used as a plain substring."""
        assert pattern_matches("item_(", "item_(3)")
        assert not pattern_matches("item_(", "item_3")

    def test_oversized_repeat_falls_back_to_substring(self):
        """Test patterns the regex engine rejects with OverflowError still match as text."""
        assert pattern_matches("a{99999999999}", "x_a{99999999999}")
        assert not pattern_matches("a{99999999999}", "aaaa")

    def test_deep_nesting_falls_back_to_substring(self):
        pattern = "(" * 5000 + "a" + ")" * 5000

        assert pattern_matches(pattern, "k" + pattern)

    def test_case_sensitive(self):
        assert not pattern_matches("LOGIN", "login_button")


class TestFilterKeys:
    """Tests for filtering key sets."""

    def test_empty_patterns_keep_everything(self):
        assert filter_keys(KEYS) == KEYS
        assert filter_keys(KEYS, [], []) == KEYS

    def test_include_only(self):
        assert filter_keys(KEYS, include_only=["^login"]) == {"login_button", "login_field"}

    def test_exclude(self):
        assert filter_keys(KEYS, exclude=["debug", "_$"]) == {"login_button", "login_field", "email_field"}

    def test_exclude_applies_after_include(self):
        """Test a key both included and excluded is dropped."""
        result = filter_keys(KEYS, include_only=["field"], exclude=["^login"])

        assert result == {"email_field"}

    def test_filter_key_map_keeps_values_and_order(self):
        """Test keyed maps keep their values and iteration order."""
        mapping = {"b_key": [1], "a_key": [2], "debug_key": [3]}

        result = filter_key_map(mapping, exclude=["debug"])

        assert list(result.items()) == [("b_key", [1]), ("a_key", [2])]


KEY_SETS = st.sets(st.from_regex(r"[a-z_]{1,12}", fullmatch=True), max_size=25)
PATTERNS = st.lists(st.sampled_from(["^a", "b", "_$", "login", "[", "x|y", "e.*d", "a{99999999999}"]), max_size=3)


class TestFilterProperties:
    """Property tests for filter composition."""

    @given(keys=KEY_SETS, include=PATTERNS, exclude=PATTERNS)
    def test_filter_equals_include_then_exclude(self, keys, include, exclude):
        """Test one call equals filtering by include and then by exclude."""
        combined = filter_keys(keys, include, exclude)
        stepwise = filter_keys(filter_keys(keys, include_only=include), exclude=exclude)

        assert combined == stepwise

    @given(keys=KEY_SETS, include=PATTERNS, exclude=PATTERNS)
    def test_filter_is_subset_and_idempotent(self, keys, include, exclude):
        """Test filtering never adds keys and a second pass changes nothing."""
        once = filter_keys(keys, include, exclude)

        assert once <= keys
        assert filter_keys(once, include, exclude) == once
