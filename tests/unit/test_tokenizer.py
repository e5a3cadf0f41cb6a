"""
Unit tests for the Python tokenizer.
"""

import tokenize

from grader.services.grading.tokenizer import compare_by_tokens, tokenize_code


class TestTokenizeCode:
    """Tests for tokenize_code."""

    def test_drops_comments_and_layout(self):
        """Comments and newline tokens are not part of the stream."""
        tokens = tokenize_code("x = 1  # one\n\n")

        assert tokens == [
            (tokenize.NAME, "x"),
            (tokenize.OP, "="),
            (tokenize.NUMBER, "1"),
        ]

    def test_whitespace_inside_line_is_ignored(self):
        """Spacing around operators does not change the stream."""
        assert tokenize_code("x=1") == tokenize_code("x   =   1")

    def test_literals_kept_by_lexeme(self):
        """Literals compare by their source text, not their value."""
        assert tokenize_code("x = 1.0") != tokenize_code("x = 1")
        assert tokenize_code("s = 'a'") != tokenize_code('s = "a"')

    def test_indentation_is_significant(self):
        """INDENT/DEDENT tokens are kept."""
        tokens = tokenize_code("if x:\n    y = 1\n")
        types = [t for t, _ in tokens]

        assert tokenize.INDENT in types
        assert tokenize.DEDENT in types

    def test_unterminated_string_returns_none(self):
        """Lex errors yield None instead of raising."""
        assert tokenize_code('x = """never closed') is None

    def test_bad_dedent_returns_none(self):
        """Inconsistent dedent is a lex error."""
        assert tokenize_code("if x:\n        y = 1\n    z = 2\n") is None


class TestCompareByTokens:
    """Tests for compare_by_tokens."""

    def test_matches_expected(self):
        """Formatting-only differences match the primary answer."""
        result = compare_by_tokens("total=a+b", "total = a + b", [])

        assert result.match is True
        assert result.matched_alternative is None

    def test_renamed_identifier_does_not_match(self):
        """Identifier lexemes must be identical."""
        result = compare_by_tokens(
            "def f(n): return n+1", "def f(a): return a+1", []
        )

        assert result.match is False

    def test_reports_first_matching_alternative(self):
        """Alternatives are tried in order, first match wins."""
        result = compare_by_tokens(
            "y = x [::-1]",
            "y = list(reversed(x))",
            ["y = x[::-1]", "y=x[::-1]"],
        )

        assert result.match is True
        assert result.matched_alternative == "y = x[::-1]"

    def test_primary_wins_over_equal_alternative(self):
        """A match on the primary answer reports no alternative."""
        result = compare_by_tokens("x = 1", "x = 1", ["x=1"])

        assert result.match is True
        assert result.matched_alternative is None

    def test_unlexable_submission_is_plain_no_match(self):
        """An unlexable submission is a no-match, not an error."""
        result = compare_by_tokens("'''open", "x = 1", ["'''open"])

        assert result.match is False
        assert result.matched_alternative is None

    def test_unlexable_alternative_is_skipped(self):
        """Broken alternatives never match."""
        result = compare_by_tokens("x = 2", "x = 1", ['"""bad', "x = 2"])

        assert result.matched_alternative == "x = 2"
