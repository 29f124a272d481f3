"""
Collapsed Gibbs sampler over token regions.

A ``TrainingSession`` owns everything that changes during one training run:
the random source, the annealer, the count tables and the variant's extra
statistics. Sweeps are strictly sequential: each token's update reads counts
the previous token may have just changed.

For token i with word w in document d the unnormalized weight of region r is

    (word_by_region[w, r] + beta) / (region_counts[r] + beta * W)
        * (region_by_doc[d, r] + alpha) * legal(r)

where legal(r) is the toponym filter times the document filter for a
toponym, and the document filter alone otherwise.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from region_geo.annealer import Annealer
from region_geo.config import SamplerConfig
from region_geo.corpus import NO_REGION, TokenStream
from region_geo.counts import CountTables
from region_geo.errors import DimensionMismatch, InvalidFilterState, InvalidHyperparameter
from region_geo.filters import RegionFilters
from region_geo.statistics import ExtraStatistics

logger = logging.getLogger(__name__)


def make_rng(seed: int) -> np.random.Generator:
    return np.random.Generator(np.random.MT19937(seed))


class TrainingSession:
    def __init__(
        self,
        corpus: TokenStream,
        filters: RegionFilters,
        n_regions: int,
        config: SamplerConfig,
        annealer: Annealer,
        extra: Optional[ExtraStatistics] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        if n_regions < 1:
            raise DimensionMismatch(f"region count must be positive, got {n_regions}")
        if corpus.W == 0:
            raise DimensionMismatch("corpus has no non-stopword vocabulary")
        filters.validate(corpus, n_regions)
        filters.require_legal(corpus)

        self.beta_w = config.beta * corpus.W
        if not self.beta_w > 0:
            raise InvalidHyperparameter(
                f"beta * W must be positive (beta={config.beta}, W={corpus.W})"
            )

        self.corpus = corpus
        self.filters = filters
        self.n_regions = n_regions
        self.alpha = config.alpha
        self.beta = config.beta
        self.annealer = annealer
        self.extra = extra or ExtraStatistics()
        self.rng = rng if rng is not None else make_rng(config.seed)
        self.counts = CountTables.zeros(corpus.W, corpus.D, n_regions)
        self.extra.bind(corpus, n_regions)
        self._probs = np.empty(n_regions, dtype=np.float64)

    # ── Drawing ────────────────────────────────────────────────────────

    def draw_region(self, probs: np.ndarray, total: float, token: int) -> int:
        """
        Inverse-CDF draw: the first region whose cumulative weight reaches u.

        u is taken from (0, total] so a zero-weight region can never be hit.
        """
        if not (total > 0 and np.isfinite(total)):
            raise InvalidFilterState(
                f"token {token} (word {self.corpus.word_ids[token]}, "
                f"document {self.corpus.doc_ids[token]}) has no legal region",
                token=token,
            )
        u = (1.0 - self.rng.random()) * total
        cdf = np.cumsum(probs)
        region = int(np.searchsorted(cdf, u, side="left"))
        if region >= self.n_regions:
            # u sits above the float sum of the entries
            region = int(np.flatnonzero(probs)[-1])
        return region

    def _place(self, i: int, region: int) -> None:
        c = self.corpus
        c.region[i] = region
        self.counts.add(c.word_ids[i], c.doc_ids[i], region)
        self.extra.on_add(i, region, self.rng)

    def _unplace(self, i: int) -> None:
        c = self.corpus
        region = int(c.region[i])
        self.extra.on_remove(i, region)
        self.counts.remove(c.word_ids[i], c.doc_ids[i], region)

    # ── Initialization ─────────────────────────────────────────────────

    def random_initialize(self) -> None:
        """Place every non-stopword token uniformly among its legal regions."""
        c = self.corpus
        self.counts = CountTables.zeros(c.W, c.D, self.n_regions)
        self.extra.bind(c, self.n_regions)
        c.region[:] = NO_REGION

        for i in range(c.N):
            if c.is_stopword[i]:
                continue
            weights = self.filters.legal_mask(c.word_ids[i], c.doc_ids[i], c.is_toponym[i])
            region = self.draw_region(weights, float(weights.sum()), i)
            self._place(i, region)

    # ── Gibbs update ───────────────────────────────────────────────────

    def sample_token(self, i: int) -> int:
        c = self.corpus
        if c.is_stopword[i]:
            return NO_REGION

        w = c.word_ids[i]
        d = c.doc_ids[i]
        self._unplace(i)

        probs = self._probs
        counts = self.counts
        np.add(counts.word_by_region[w], self.beta, out=probs)
        probs /= counts.region_counts + self.beta_w
        probs *= counts.region_by_doc[d] + self.alpha
        probs *= self.filters.legal_mask(w, d, c.is_toponym[i])

        total = self.annealer.anneal_probs(probs)
        region = self.draw_region(probs, total, i)
        self._place(i, region)
        return region

    def sweep(self) -> None:
        for i in range(self.corpus.N):
            self.sample_token(i)
        logger.debug("Sweep %d done at temperature %.4f", self.annealer.iteration, self.annealer.temperature)

    def snapshot(self) -> dict[str, np.ndarray]:
        tables = self.counts.snapshot()
        tables.update(self.extra.snapshot())
        return tables
