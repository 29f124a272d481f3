"""
Annealing schedule and sample collection.

The annealer walks the outer iteration counter through four phases:

  BURN_IN    sweeps at the initial temperature, discarded
  ANNEALING  temperature cools linearly back to 1.0
  SAMPLING   standard Gibbs; every ``lag``-th sweep is accumulated
  DONE       target sample count reached (or budget exhausted)

Temperature T is applied to a probability vector by raising each entry to
1/T; T > 1 flattens the distribution, T < 1 sharpens it, T == 1 is a no-op.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Mapping

import numpy as np

from region_geo.accumulator import SampleAccumulator
from region_geo.config import AnnealingConfig
from region_geo.errors import AnnealerStateError

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    BURN_IN = "burn_in"
    ANNEALING = "annealing"
    SAMPLING = "sampling"
    DONE = "done"


class Annealer:
    def __init__(self, config: AnnealingConfig | None = None):
        self.config = config or AnnealingConfig()
        self.iteration = 0
        self.phase = Phase.BURN_IN
        self.temperature = self.config.initial_temperature
        self.accumulator = SampleAccumulator()
        self._collected_at = 0

    # ── Schedule ───────────────────────────────────────────────────────

    @property
    def total_iterations(self) -> int:
        return self.config.total_iterations

    @property
    def samples(self) -> int:
        """Number of samples collected so far."""
        return self.accumulator.count

    @property
    def inner_iteration(self) -> int:
        """0-based sweep index within the sampling phase, -1 before it."""
        c = self.config
        return self.iteration - c.burn_in - c.cooling_iterations - 1

    def phase_at(self, iteration: int) -> Phase:
        c = self.config
        if iteration <= c.burn_in:
            return Phase.BURN_IN
        if iteration <= c.burn_in + c.cooling_iterations:
            return Phase.ANNEALING
        return Phase.SAMPLING

    def temperature_at(self, iteration: int) -> float:
        c = self.config
        t0 = c.initial_temperature
        if iteration <= c.burn_in:
            return t0
        if c.cooling_iterations == 0:
            return 1.0
        progress = (iteration - c.burn_in) / c.cooling_iterations
        return 1.0 + (t0 - 1.0) * max(0.0, 1.0 - progress)

    def next_iter(self) -> bool:
        """Advance the outer counter; False once the schedule is exhausted."""
        if self.phase is Phase.DONE:
            return False
        if self.iteration >= self.total_iterations:
            self._finish("iteration budget exhausted")
            return False

        self.iteration += 1
        phase = self.phase_at(self.iteration)
        if phase is not self.phase:
            logger.info("Iteration %d: entering %s phase", self.iteration, phase.value)
        self.phase = phase
        self.temperature = self.temperature_at(self.iteration)
        return True

    # ── Probability transform ──────────────────────────────────────────

    def anneal_probs(self, probs: np.ndarray) -> float:
        """Temper ``probs`` in place and return the new total mass."""
        if self.iteration == 0:
            raise AnnealerStateError("anneal_probs called before the first iteration")
        if self.temperature != 1.0:
            # Rescale so the largest weight is 1; sharpening then cannot underflow every entry
            peak = probs.max()
            if peak > 0:
                probs /= peak
            np.power(probs, 1.0 / self.temperature, out=probs)
        return float(probs.sum())

    # ── Samples ────────────────────────────────────────────────────────

    @property
    def sample_due(self) -> bool:
        return (
            self.phase is Phase.SAMPLING
            and self.samples < self.config.samples
            and self._collected_at != self.iteration
            and self.inner_iteration % self.config.lag == 0
        )

    def collect_samples(self, tables: Mapping[str, np.ndarray]) -> bool:
        """Accumulate ``tables`` if a sample is due this iteration."""
        if not self.sample_due:
            return False
        self.accumulator.add(tables)
        self._collected_at = self.iteration
        logger.info("(sample:%d/%d) at iteration %d", self.samples, self.config.samples, self.iteration)
        if self.samples == self.config.samples:
            self._finish("sample target reached")
        return True

    def _finish(self, reason: str) -> None:
        if self.phase is not Phase.DONE:
            logger.info("Annealing done after %d iterations: %s", self.iteration, reason)
        self.phase = Phase.DONE
        self.accumulator.normalize()

    def results(self) -> dict[str, np.ndarray]:
        """Averaged tables; empty when nothing was collected."""
        self.accumulator.normalize()
        return self.accumulator.tables()
