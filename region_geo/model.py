"""
Region-topic model training driver.

Runs random initialization once, then sweeps until the annealer reports the
schedule is over, handing the annealer a snapshot of the tables whenever a
sample is due. The result is the averaged tables when samples were collected,
otherwise the raw counts of the last sweep.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from region_geo.annealer import Annealer
from region_geo.config import AnnealingConfig, SamplerConfig, get_settings
from region_geo.corpus import TokenStream
from region_geo.filters import RegionFilters
from region_geo.sampler import TrainingSession
from region_geo.statistics import ExtraStatistics

logger = logging.getLogger(__name__)


@dataclass
class Posterior:
    region_counts: np.ndarray
    region_by_doc: np.ndarray
    word_by_region: np.ndarray
    regions: np.ndarray
    samples: int
    iterations: int
    alpha: float
    beta: float
    extra: dict[str, np.ndarray] = field(default_factory=dict)

    @property
    def averaged(self) -> bool:
        return self.samples > 0

    def region_probs(self) -> np.ndarray:
        """p(r): smoothed share of tokens per region."""
        smoothed = self.region_counts + self.alpha
        return smoothed / smoothed.sum()

    def word_given_region(self) -> np.ndarray:
        """W x R matrix of p(w | r) under the beta prior."""
        n_words = self.word_by_region.shape[0]
        return (self.word_by_region + self.beta) / (self.region_counts + self.beta * n_words)

    def region_given_doc(self) -> np.ndarray:
        """D x R matrix of p(r | d) under the alpha prior."""
        smoothed = self.region_by_doc + self.alpha
        return smoothed / smoothed.sum(axis=1, keepdims=True)


class RegionTopicModel:
    def __init__(
        self,
        corpus: TokenStream,
        filters: RegionFilters,
        n_regions: int,
        sampler_config: Optional[SamplerConfig] = None,
        annealing_config: Optional[AnnealingConfig] = None,
        extra: Optional[ExtraStatistics] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        settings = get_settings()
        self.sampler_config = sampler_config or settings.sampler
        self.annealer = Annealer(annealing_config or settings.annealing)
        self.session = TrainingSession(
            corpus,
            filters,
            n_regions,
            self.sampler_config,
            self.annealer,
            extra=extra,
            rng=rng,
        )
        self._stop_requested = False
        self.posterior: Optional[Posterior] = None

    @property
    def corpus(self) -> TokenStream:
        return self.session.corpus

    def request_stop(self) -> None:
        """Do not start another sweep; the current one finishes normally."""
        self._stop_requested = True

    def train(self) -> Posterior:
        c = self.corpus
        R = self.session.n_regions
        logger.info("Randomly initializing with %d tokens, %d words, %d regions, %d documents", c.N, c.W, R, c.D)
        self.session.random_initialize()

        logger.info("Beginning training with %d tokens, %d words, %d regions, %d documents", c.N, c.W, R, c.D)
        start = time.monotonic()
        while not self._stop_requested and self.annealer.next_iter():
            self.session.sweep()
            if self.annealer.sample_due:
                self.annealer.collect_samples(self.session.snapshot())

        if self._stop_requested:
            logger.info("Training stopped on request after %d iterations", self.annealer.iteration)
        logger.info(
            "Training finished: %d iterations, %d samples in %.1fs",
            self.annealer.iteration, self.annealer.samples, time.monotonic() - start,
        )
        self.posterior = self._build_posterior()
        return self.posterior

    def _build_posterior(self) -> Posterior:
        if self.annealer.samples:
            tables = self.annealer.results()
        else:
            tables = {k: v.astype(np.float64) for k, v in self.session.snapshot().items()}

        return Posterior(
            region_counts=tables.pop("region_counts"),
            region_by_doc=tables.pop("region_by_doc"),
            word_by_region=tables.pop("word_by_region"),
            regions=self.corpus.region.copy(),
            samples=self.annealer.samples,
            iterations=self.annealer.iteration,
            alpha=self.sampler_config.alpha,
            beta=self.sampler_config.beta,
            extra=tables,
        )
