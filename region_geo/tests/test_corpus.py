from __future__ import annotations

import numpy as np
import pytest

from region_geo.corpus import NO_REGION, TokenStream
from region_geo.counts import CountTables
from region_geo.errors import DimensionMismatch


class TestTokenStream:
    def test_sizes_exclude_stopword_ids(self):
        corpus = TokenStream.from_records([
            (0, 0, True, False),
            (99, 0, False, True),
            (3, 1, False, False),
        ])
        assert corpus.N == 3
        assert corpus.W == 4
        assert corpus.D == 2
        assert corpus.n_active == 2
        assert corpus.doc_lengths().tolist() == [1, 1]
        assert (corpus.region == NO_REGION).all()

    def test_length_mismatch(self):
        with pytest.raises(DimensionMismatch):
            TokenStream(np.array([0, 1]), np.array([0]), np.array([False, False]), np.array([False, False]))

    def test_declared_sizes_too_small(self):
        with pytest.raises(DimensionMismatch):
            TokenStream.from_records([(5, 0, False, False)], vocab_size=3)
        with pytest.raises(DimensionMismatch):
            TokenStream.from_records([(0, 4, False, False)], doc_count=2)

    def test_negative_ids(self):
        with pytest.raises(DimensionMismatch):
            TokenStream.from_records([(-1, 0, False, False)])

    def test_empty(self):
        corpus = TokenStream.from_records([], vocab_size=2, doc_count=1)
        assert corpus.N == 0
        assert corpus.W == 2

    def test_toponym_positions(self):
        corpus = TokenStream.from_records([
            (0, 0, True, False),
            (1, 0, True, False),
            (0, 0, True, False),
            (0, 0, True, True),
        ])
        assert corpus.toponym_positions().tolist() == [0, 1, 2]
        assert corpus.toponym_positions(word_id=0).tolist() == [0, 2]


class TestCountTables:
    def test_add_remove_triple(self):
        counts = CountTables.zeros(n_words=2, n_docs=1, n_regions=3)
        counts.add(1, 0, 2)
        counts.add(1, 0, 2)
        counts.remove(1, 0, 2)
        assert counts.region_counts.tolist() == [0, 0, 1]
        assert counts.region_by_doc.tolist() == [[0, 0, 1]]
        assert counts.word_by_region.tolist() == [[0, 0, 0], [0, 0, 1]]

    def test_consistency_check(self):
        corpus = TokenStream.from_records([(0, 0, False, False), (1, 0, False, False)])
        counts = CountTables.zeros(corpus.W, corpus.D, 2)
        corpus.region[:] = [0, 1]
        counts.add(0, 0, 0)
        counts.add(1, 0, 1)
        assert counts.is_consistent(corpus)
        counts.add(1, 0, 1)
        assert not counts.is_consistent(corpus)

    def test_snapshot_is_a_copy(self):
        counts = CountTables.zeros(1, 1, 2)
        snap = counts.snapshot()
        counts.add(0, 0, 1)
        assert snap["region_counts"].tolist() == [0, 0]
