import threading
import time

import pytest

from techdocs.common.locks import KeyedLock
from techdocs.common.utils import clean_text, normalize_text, query_terms, tokenize


class TestCleanText:
    """Unit tests for the shared text cleaning helpers."""

    @pytest.mark.unit
    def test_strips_bom_and_replacement_characters(self):
        assert clean_text("\ufeffReact hooks\ufffd") == "React hooks"

    @pytest.mark.unit
    def test_nfkc_normalization(self):
        """Compatibility characters are folded."""
        assert clean_text("\ufb01le") == "file"
        assert clean_text("\ufb01le", normalize=False) == "\ufb01le"

    @pytest.mark.unit
    def test_ascii_only(self):
        assert clean_text("Résumé café", ascii_only=True) == "Rsum caf"

    @pytest.mark.unit
    def test_empty_input(self):
        assert clean_text("") == ""
        assert normalize_text("  \ufeff  ") == ""


class TestTokenize:
    """Unit tests for the shared tokenizer."""

    @pytest.mark.unit
    def test_lowercases_word_tokens(self):
        assert tokenize("React Hooks: useState()!") == ["react", "hooks", "usestate"]

    @pytest.mark.unit
    def test_query_terms_distinct_and_ordered(self):
        assert query_terms("Hooks a hooks state") == ["hooks", "state"]

    @pytest.mark.unit
    def test_query_terms_min_length(self):
        assert query_terms("do it", min_length=1) == ["do", "it"]
        assert query_terms("a b", min_length=2) == []


class TestKeyedLock:
    """Unit tests for the per-key lock registry."""

    @pytest.mark.unit
    def test_same_key_serialized(self):
        locks = KeyedLock()
        events = []

        def writer(name):
            with locks.hold("doc1"):
                events.append(f"{name}-start")
                time.sleep(0.02)
                events.append(f"{name}-end")

        threads = [threading.Thread(target=writer, args=(n,)) for n in ("a", "b")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        # No interleaving: each writer finishes before the next starts
        assert events[0][0] == events[1][0]
        assert events[2][0] == events[3][0]

    @pytest.mark.unit
    def test_different_keys_do_not_block(self):
        locks = KeyedLock()
        acquired = threading.Event()

        def other_writer():
            with locks.hold("doc2"):
                acquired.set()

        with locks.hold("doc1"):
            thread = threading.Thread(target=other_writer)
            thread.start()
            assert acquired.wait(timeout=1)
        thread.join()
