"""Short, query-relevant snippets of chunk text for display."""

import re

from ...common.utils import query_terms

DEFAULT_EXCERPT_LENGTH = 300
WINDOW_STEP = 50
# A sentence boundary is only used to trim a window when it lies past this
# fraction of the window, so trimming never throws most of the window away.
SENTENCE_TRIM_THRESHOLD = 0.7

ELLIPSIS = "…"
SPAN_SEPARATOR = f" {ELLIPSIS} "
HIGHLIGHT_PRE = "<mark>"
HIGHLIGHT_POST = "</mark>"

_SENTENCE_END_RE = re.compile(r"[.!?](?=\s|$)")


def highlight_terms(text: str, terms: list[str]) -> str:
    """Wrap whole-word, case-insensitive occurrences of ``terms`` in highlight tags."""
    if not terms:
        return text
    pattern = re.compile(
        r"\b(" + "|".join(re.escape(term) for term in sorted(terms, key=len, reverse=True)) + r")\b",
        re.IGNORECASE,
    )
    return pattern.sub(lambda m: f"{HIGHLIGHT_PRE}{m.group(0)}{HIGHLIGHT_POST}", text)


class ExcerptBuilder:
    """Builds excerpts by sliding a fixed-size window over the text.

    Each window is scored by the number of distinct query terms it contains;
    the best window wins, the earliest one on ties.
    """

    def __init__(self, max_length: int = DEFAULT_EXCERPT_LENGTH, step: int = WINDOW_STEP) -> None:
        if max_length <= 0 or step <= 0:
            raise ValueError("max_length and step must be positive")
        self.max_length = max_length
        self.step = step

    @staticmethod
    def _score(window: str, terms: list[str]) -> int:
        lowered = window.lower()
        return sum(1 for term in terms if re.search(rf"\b{re.escape(term)}\b", lowered))

    def _window_starts(self, text_length: int, window_length: int) -> list[int]:
        last = text_length - window_length
        starts = list(range(0, last + 1, self.step))
        if starts[-1] != last:
            starts.append(last)
        return starts

    @staticmethod
    def _join_spans(spans: tuple[str, ...] | list[str], max_length: int) -> str:
        joined = SPAN_SEPARATOR.join(span.strip() for span in spans if span.strip())
        if len(joined) > max_length:
            joined = joined[: max_length - 1].rstrip() + ELLIPSIS
        return joined

    def excerpt(
        self,
        full_text: str,
        query: str,
        max_length: int | None = None,
        highlights: tuple[str, ...] | list[str] | None = None,
        highlight: bool = False,
    ) -> str:
        """Build an excerpt of ``full_text`` for ``query``.

        Args:
            full_text: Complete chunk text.
            query: The user's query.
            max_length: Maximum excerpt length (defaults to the builder's).
            highlights: Highlighted spans supplied by keyword search; joined
                and returned instead of deriving a window when present.
            highlight: Wrap query terms in highlight tags.

        Returns:
            The excerpt, with ``…`` markers where the text was cut. Its plain
            text never exceeds ``max_length``; highlight tags come on top.
        """
        max_length = max_length or self.max_length

        if highlights:
            joined = self._join_spans(highlights, max_length)
            if joined:
                return joined

        terms = query_terms(query)
        text = full_text or ""

        if len(text) <= max_length:
            return highlight_terms(text, terms) if highlight else text

        # Room for a leading and a trailing marker
        window_length = max(1, max_length - 2 * len(ELLIPSIS))
        best_start = 0
        best_score = -1
        for start in self._window_starts(len(text), window_length):
            score = self._score(text[start : start + window_length], terms)
            if score > best_score:
                best_start, best_score = start, score

        window = text[best_start : best_start + window_length]

        boundaries = [m.end() for m in _SENTENCE_END_RE.finditer(window)]
        if boundaries and boundaries[-1] > SENTENCE_TRIM_THRESHOLD * len(window):
            window = window[: boundaries[-1]]

        end = best_start + len(window)
        snippet = window.strip()
        if highlight:
            snippet = highlight_terms(snippet, terms)
        if best_start > 0:
            snippet = ELLIPSIS + snippet
        if end < len(text):
            snippet = snippet + ELLIPSIS
        return snippet
