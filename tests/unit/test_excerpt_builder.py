"""Unit tests for excerpt building and term highlighting."""

import pytest

from techdocs.core.services.excerpt_builder import (
    ELLIPSIS,
    ExcerptBuilder,
    highlight_terms,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def builder():
    return ExcerptBuilder(max_length=300)


class TestHighlightTerms:
    """Tests for highlight_terms."""

    def test_wraps_whole_words_case_insensitively(self):
        """Only whole-word matches are wrapped, original casing kept."""
        assert highlight_terms("Hooks and hooked", ["hooks"]) == "<mark>Hooks</mark> and hooked"

    def test_no_terms_returns_text(self):
        assert highlight_terms("React hooks", []) == "React hooks"


class TestExcerptBuilder:
    """Tests for ExcerptBuilder.excerpt."""

    def test_short_text_returned_unchanged(self, builder):
        """Text within max_length is returned as-is."""
        text = "React hooks let you use state in function components."
        assert builder.excerpt(text, "hooks") == text

    def test_highlight_flag_wraps_query_terms(self, builder):
        """highlight=True wraps query terms."""
        excerpt = builder.excerpt("React hooks are great", "hooks", highlight=True)
        assert excerpt == "React <mark>hooks</mark> are great"

    def test_window_centered_on_query_terms(self, builder):
        """The excerpt comes from the region containing the query terms."""
        text = "Intro filler. " * 40 + "React hooks let you use state." + " More filler text." * 40

        excerpt = builder.excerpt(text, "hooks state")

        assert "React hooks let you use state." in excerpt
        assert excerpt.startswith(ELLIPSIS)
        assert excerpt.endswith(ELLIPSIS)
        assert len(excerpt) <= 300

    def test_earliest_window_wins_ties(self, builder):
        """Without matching terms the excerpt starts at the beginning."""
        text = "Alpha beta gamma. " * 50

        excerpt = builder.excerpt(text, "nonexistent")

        assert not excerpt.startswith(ELLIPSIS)
        assert excerpt.startswith("Alpha beta gamma.")
        assert excerpt.endswith(ELLIPSIS)

    def test_trims_to_sentence_boundary(self, builder):
        """A window is cut back to the last sentence end past 70% of its length."""
        text = "First sentence here. " * 30

        excerpt = builder.excerpt(text, "first")

        assert excerpt.rstrip(ELLIPSIS).endswith(".")

    def test_supplied_highlights_preferred(self, builder):
        """Highlight spans from keyword search replace the derived window."""
        excerpt = builder.excerpt(
            "irrelevant full text",
            "hooks",
            highlights=("React <mark>hooks</mark> let you", "custom <mark>hooks</mark>"),
        )
        assert excerpt == "React <mark>hooks</mark> let you … custom <mark>hooks</mark>"

    def test_supplied_highlights_truncated(self):
        """Joined highlight spans respect max_length."""
        builder = ExcerptBuilder(max_length=20)
        excerpt = builder.excerpt("text", "q", highlights=("a" * 50,))

        assert len(excerpt) == 20
        assert excerpt.endswith(ELLIPSIS)

    def test_max_length_override(self, builder):
        """max_length passed to excerpt() overrides the builder default."""
        text = "word " * 100
        excerpt = builder.excerpt(text, "word", max_length=50)

        assert len(excerpt) <= 50

    @pytest.mark.parametrize("offset", [0, 37, 120, 400])
    def test_markers_fit_within_max_length(self, offset):
        """Cut markers are counted against max_length."""
        builder = ExcerptBuilder(max_length=100)
        text = "x" * offset + " hooks state " + "y" * 500

        excerpt = builder.excerpt(text, "hooks")

        assert len(excerpt) <= 100
        assert excerpt.endswith(ELLIPSIS)

    def test_invalid_configuration_raises(self):
        with pytest.raises(ValueError):
            ExcerptBuilder(max_length=0)
