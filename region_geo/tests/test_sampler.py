"""
Tests for random initialization and the collapsed Gibbs update.
Pure unit tests on small in-memory corpora.
"""

from __future__ import annotations

import numpy as np
import pytest

from region_geo.annealer import Annealer
from region_geo.config import AnnealingConfig, SamplerConfig
from region_geo.corpus import NO_REGION, TokenStream
from region_geo.errors import DimensionMismatch, InvalidFilterState
from region_geo.filters import RegionFilters
from region_geo.sampler import TrainingSession, make_rng


def _scenario():
    # token 0: toponym word 0, token 1: stopword, tokens 2-3: plain word 1
    corpus = TokenStream.from_records([
        (0, 0, True, False),
        (7, 0, False, True),
        (1, 0, False, False),
        (1, 0, False, False),
    ])
    filters = RegionFilters(
        toponym=np.array([[1, 0], [1, 1]]),
        active_by_doc=np.array([[1, 1]]),
    )
    return corpus, filters


def _random_corpus(seed: int = 3, n_tokens: int = 400, n_words: int = 25, n_docs: int = 8, n_regions: int = 6):
    rng = np.random.default_rng(seed)
    words = rng.integers(0, n_words, n_tokens)
    docs = rng.integers(0, n_docs, n_tokens)
    toponym_words = set(range(5))
    is_toponym = np.array([w in toponym_words for w in words])
    is_stopword = rng.random(n_tokens) < 0.1
    corpus = TokenStream(words, docs, is_toponym, is_stopword, vocab_size=n_words, doc_count=n_docs)

    toponym = np.zeros((n_words, n_regions))
    for w in range(n_words):
        toponym[w, rng.choice(n_regions, size=2, replace=False)] = 1
    active = (rng.random((n_docs, n_regions)) < 0.7).astype(float)
    # Every document must admit every toponym's regions somewhere
    active[:, :] = np.maximum(active, toponym[:5].max(axis=0))
    return corpus, RegionFilters(toponym, active), n_regions


def _session(corpus, filters, n_regions, seed=0, alpha=0.1, beta=0.01, **anneal):
    anneal.setdefault("burn_in", 0)
    anneal.setdefault("samples", 0)
    anneal.setdefault("iterations", 50)
    annealer = Annealer(AnnealingConfig(**anneal))
    return TrainingSession(
        corpus, filters, n_regions, SamplerConfig(alpha=alpha, beta=beta, seed=seed), annealer
    )


def _assert_toponyms_legal(corpus, filters):
    for i in corpus.toponym_positions():
        r = corpus.region[i]
        assert filters.toponym[corpus.word_ids[i], r] == 1
        assert filters.active_by_doc[corpus.doc_ids[i], r] == 1


class TestRandomInitialize:
    def test_respects_filters(self):
        corpus, filters, R = _random_corpus()
        session = _session(corpus, filters, R)
        session.random_initialize()
        _assert_toponyms_legal(corpus, filters)
        for i in np.flatnonzero(~corpus.is_stopword & ~corpus.is_toponym):
            assert filters.active_by_doc[corpus.doc_ids[i], corpus.region[i]] == 1

    def test_counts_match_assignments(self):
        corpus, filters, R = _random_corpus()
        session = _session(corpus, filters, R)
        session.random_initialize()
        assert session.counts.is_consistent(corpus)
        assert session.counts.region_counts.sum() == corpus.n_active

    def test_stopwords_never_assigned(self):
        corpus, filters = _scenario()
        session = _session(corpus, filters, 2)
        session.random_initialize()
        assert corpus.region[1] == NO_REGION

    def test_zero_legal_regions_fails_fast(self):
        corpus = TokenStream.from_records([(0, 0, False, False), (1, 0, True, False)])
        filters = RegionFilters(
            toponym=np.array([[1, 1], [0, 0]]),
            active_by_doc=np.array([[1, 1]]),
        )
        with pytest.raises(InvalidFilterState) as exc:
            _session(corpus, filters, 2)
        assert exc.value.token == 1

    def test_toponym_and_document_filters_disjoint(self):
        corpus = TokenStream.from_records([(0, 0, True, False)])
        filters = RegionFilters(
            toponym=np.array([[1, 0, 0]]),
            active_by_doc=np.array([[0, 1, 1]]),
        )
        with pytest.raises(InvalidFilterState):
            _session(corpus, filters, 3)


class TestGibbsUpdate:
    @pytest.mark.parametrize("seed", range(10))
    def test_scenario_single_sweep(self, seed):
        corpus, filters = _scenario()
        session = _session(corpus, filters, 2, seed=seed, alpha=0.1, beta=0.01)
        session.random_initialize()
        assert session.annealer.next_iter()
        session.sweep()
        assert corpus.region[0] == 0
        assert corpus.region[1] == NO_REGION
        assert session.counts.region_counts[0] + session.counts.region_counts[1] == 3

    def test_count_conservation_every_sweep(self):
        corpus, filters, R = _random_corpus()
        session = _session(corpus, filters, R)
        session.random_initialize()
        lengths = corpus.doc_lengths()
        for _ in range(15):
            assert session.annealer.next_iter()
            session.sweep()
            counts = session.counts
            assert counts.is_consistent(corpus)
            assert np.array_equal(counts.region_by_doc.sum(axis=1), lengths)
            assert counts.region_counts.sum() == corpus.n_active
            assert np.array_equal(counts.word_by_region.sum(axis=0), counts.region_counts)
            assert (counts.region_by_doc >= 0).all()

    def test_filters_respected_every_sweep(self):
        corpus, filters, R = _random_corpus(seed=11)
        session = _session(corpus, filters, R, initial_temperature=4.0, cooling_iterations=5)
        session.random_initialize()
        for _ in range(10):
            assert session.annealer.next_iter()
            session.sweep()
            _assert_toponyms_legal(corpus, filters)

    def test_low_temperature_sweep_on_sparse_counts(self):
        # one token per document over a wide vocabulary: raw weights are ~1e-6
        n_tokens, n_words, n_regions = 300, 5000, 4
        rng = np.random.default_rng(11)
        corpus = TokenStream(
            rng.integers(0, n_words, n_tokens),
            np.arange(n_tokens),
            np.zeros(n_tokens, dtype=bool),
            np.zeros(n_tokens, dtype=bool),
            vocab_size=n_words,
            doc_count=n_tokens,
        )
        filters = RegionFilters(np.zeros((n_words, n_regions)), np.ones((n_tokens, n_regions)))
        session = _session(corpus, filters, n_regions, initial_temperature=0.01, burn_in=2)
        session.random_initialize()
        for _ in range(2):
            assert session.annealer.next_iter()
            assert session.annealer.temperature == pytest.approx(0.01)
            session.sweep()
        assert ((corpus.region >= 0) & (corpus.region < n_regions)).all()
        assert session.counts.is_consistent(corpus)

    def test_stopword_sample_is_noop(self):
        corpus, filters = _scenario()
        session = _session(corpus, filters, 2)
        session.random_initialize()
        session.annealer.next_iter()
        before = session.counts.snapshot()
        assert session.sample_token(1) == NO_REGION
        after = session.counts.snapshot()
        for name in before:
            assert np.array_equal(before[name], after[name])

    def test_deterministic_given_random_source(self):
        trajectories = []
        for _ in range(2):
            corpus, filters, R = _random_corpus(seed=5)
            annealer = Annealer(AnnealingConfig(burn_in=0, samples=0, iterations=8))
            session = TrainingSession(
                corpus, filters, R, SamplerConfig(alpha=0.5, beta=0.1), annealer, rng=make_rng(1234)
            )
            session.random_initialize()
            path = [corpus.region.copy()]
            while annealer.next_iter():
                session.sweep()
                path.append(corpus.region.copy())
            trajectories.append(np.stack(path))
        assert np.array_equal(trajectories[0], trajectories[1])

    def test_large_priors_approach_filter_uniform(self):
        # 300 plain tokens in one document that admits regions 0 and 1 only
        rng = np.random.default_rng(0)
        corpus = TokenStream(
            rng.integers(0, 10, 300),
            np.zeros(300, dtype=int),
            np.zeros(300, dtype=bool),
            np.zeros(300, dtype=bool),
            vocab_size=10,
        )
        filters = RegionFilters(np.ones((10, 3)), np.array([[1, 1, 0]]))
        session = _session(corpus, filters, 3, alpha=1e6, beta=1e6, iterations=30)
        session.random_initialize()
        freqs = []
        while session.annealer.next_iter():
            session.sweep()
            freqs.append(session.counts.region_counts / corpus.n_active)
        mean = np.mean(freqs, axis=0)
        assert mean[2] == 0.0
        assert mean[0] == pytest.approx(0.5, abs=0.03)
        assert mean[1] == pytest.approx(0.5, abs=0.03)


class TestDrawRegion:
    def test_zero_weight_regions_never_drawn(self):
        corpus, filters = _scenario()
        session = _session(corpus, filters, 2)
        probs = np.array([0.0, 2.0])
        draws = {session.draw_region(probs, 2.0, 0) for _ in range(200)}
        assert draws == {1}

    def test_edges_of_unit_interval(self):
        corpus = TokenStream.from_records([(0, 0, False, False)])
        filters = RegionFilters(np.ones((1, 4)), np.ones((1, 4)))
        session = _session(corpus, filters, 4)
        probs = np.array([0.0, 1.0, 0.0, 3.0])

        class _Fixed:
            def __init__(self, value):
                self.value = value

            def random(self):
                return self.value

        session.rng = _Fixed(0.0)      # u == total
        assert session.draw_region(probs, 4.0, 0) == 3
        session.rng = _Fixed(0.999999)  # u just above zero
        assert session.draw_region(probs, 4.0, 0) == 1

    def test_no_mass_raises(self):
        corpus, filters = _scenario()
        session = _session(corpus, filters, 2)
        with pytest.raises(InvalidFilterState):
            session.draw_region(np.zeros(2), 0.0, 0)


class TestSessionValidation:
    def test_filter_shape_mismatch(self):
        corpus, _ = _scenario()
        filters = RegionFilters(np.ones((3, 2)), np.ones((1, 2)))
        with pytest.raises(DimensionMismatch):
            _session(corpus, filters, 2)

    def test_region_count_mismatch(self):
        corpus, filters = _scenario()
        with pytest.raises(DimensionMismatch):
            _session(corpus, filters, 3)

    def test_empty_vocabulary_rejected(self):
        corpus = TokenStream.from_records([(0, 0, False, True)])
        filters = RegionFilters(np.ones((0, 2)), np.ones((1, 2)))
        with pytest.raises(DimensionMismatch, match="vocabulary"):
            _session(corpus, filters, 2)
