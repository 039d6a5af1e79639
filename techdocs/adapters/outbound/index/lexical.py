"""Fielded, fuzzy-tolerant BM25 scoring over chunk payloads.

Mirrors a ``multi_match`` query with ``fields: [title^3, body^2, tag]`` and
``fuzziness: AUTO``: every field is scored with its own BM25 model, the field
scores are combined with fixed weights, and query terms also match
vocabulary terms within a small edit distance.
"""

import logging
import re
from dataclasses import dataclass, field

import numpy as np
from rank_bm25 import BM25Plus

from ....common.utils import query_terms, tokenize
from ....core.services.excerpt_builder import highlight_terms

logger = logging.getLogger(__name__)

TITLE_WEIGHT = 3.0
BODY_WEIGHT = 2.0
TAG_WEIGHT = 1.0
FIELD_WEIGHTS = {"title": TITLE_WEIGHT, "body": BODY_WEIGHT, "tag": TAG_WEIGHT}

FRAGMENT_SIZE = 100
MAX_FRAGMENTS = 3


def auto_fuzziness(term: str) -> int:
    """Allowed edit distance for a term, following the ``AUTO`` rule."""
    if len(term) <= 2:
        return 0
    if len(term) <= 5:
        return 1
    return 2


def within_edit_distance(a: str, b: str, max_distance: int) -> bool:
    """True if the Levenshtein distance between ``a`` and ``b`` is <= max_distance."""
    if a == b:
        return True
    if max_distance == 0 or abs(len(a) - len(b)) > max_distance:
        return False

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        if min(current) > max_distance:
            return False
        previous = current
    return previous[-1] <= max_distance


@dataclass
class LexicalDocument:
    """The searchable fields of one chunk."""

    key: str
    title: str
    body: str
    tag: str


@dataclass
class LexicalMatch:
    """A scored lexical match."""

    key: str
    score: float
    matched_terms: set[str] = field(default_factory=set)
    highlights: tuple[str, ...] = ()


class FieldedBM25:
    """BM25 over several weighted fields of the same documents."""

    def __init__(self, documents: list[LexicalDocument]) -> None:
        self.documents = documents
        self._tokens = {
            name: [tokenize(getattr(doc, name)) for doc in documents] for name in FIELD_WEIGHTS
        }
        self._token_sets = [
            set().union(*(self._tokens[name][i] for name in FIELD_WEIGHTS))
            for i in range(len(documents))
        ]
        self.vocabulary: set[str] = set().union(*self._token_sets) if documents else set()
        # rank_bm25 cannot build a model over a field that is empty everywhere
        self._models = {
            name: BM25Plus(tokens)
            for name, tokens in self._tokens.items()
            if documents and any(tokens)
        }

    def expand(self, query: str) -> set[str]:
        """Vocabulary terms matched by the query's terms, fuzzily."""
        expanded: set[str] = set()
        for term in query_terms(query, min_length=1):
            max_distance = auto_fuzziness(term)
            for candidate in self.vocabulary:
                if within_edit_distance(term, candidate, max_distance):
                    expanded.add(candidate)
        return expanded

    def search(self, query: str, limit: int) -> list[LexicalMatch]:
        """Score all documents and return the best ``limit`` that match a term."""
        if not self.documents or limit <= 0:
            return []

        terms = self.expand(query)
        if not terms:
            return []

        ordered_terms = sorted(terms)
        scores = np.zeros(len(self.documents))
        for name, model in self._models.items():
            scores += FIELD_WEIGHTS[name] * model.get_scores(ordered_terms)

        matches = []
        for i, doc in enumerate(self.documents):
            matched = terms & self._token_sets[i]
            if matched:
                matches.append(
                    LexicalMatch(
                        key=doc.key,
                        score=float(scores[i]),
                        matched_terms=matched,
                        highlights=build_fragments(doc.body, matched),
                    )
                )

        # stable: equal scores keep corpus order
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:limit]


def build_fragments(
    text: str,
    terms: set[str],
    fragment_size: int = FRAGMENT_SIZE,
    max_fragments: int = MAX_FRAGMENTS,
) -> tuple[str, ...]:
    """Highlighted fragments of ``text`` around occurrences of ``terms``."""
    if not text or not terms:
        return ()

    pattern = re.compile(
        r"\b(" + "|".join(re.escape(t) for t in sorted(terms, key=len, reverse=True)) + r")\b",
        re.IGNORECASE,
    )
    fragments: list[str] = []
    covered_until = -1
    lead = fragment_size * 2 // 5

    for match in pattern.finditer(text):
        if match.start() < covered_until:
            continue
        start = max(0, match.start() - lead)
        end = min(len(text), start + fragment_size)
        # widen to word boundaries
        while start > 0 and not text[start - 1].isspace():
            start -= 1
        while end < len(text) and not text[end].isspace():
            end += 1
        fragment = text[start:end].strip()
        if fragment:
            fragments.append(highlight_terms(fragment, sorted(terms)))
        covered_until = end
        if len(fragments) >= max_fragments:
            break

    return tuple(fragments)
