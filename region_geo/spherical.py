"""
Spherical variant statistics.

Regions are grid cells on the globe. Every toponym word carries a list of
candidate coordinates from the gazetteer and each candidate falls in exactly
one region. When a toponym token lands in region r it is tied to one of its
candidates inside r, drawn uniformly.

Per region we keep the running vector sum of the tied coordinates (unit
vectors, not renormalized while accumulating) and the number of toponym
tokens. Candidate tie counts form the region x toponym x coordinate tensor;
since a candidate belongs to a single region it is stored flat, one cell per
(word, candidate) pair.

Every collected sample contributes the current directional means, the
concentration estimate per region and the candidate counts.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

import numpy as np

from region_geo.corpus import TokenStream
from region_geo.errors import DimensionMismatch, InvalidFilterState
from region_geo.regions import RegionGrid, cartesian_to_geographic, geographic_to_cartesian
from region_geo.statistics import ExtraStatistics

logger = logging.getLogger(__name__)

# Keeps kappa finite when every coordinate in a region coincides.
MAX_RESULTANT_LENGTH = 1.0 - 1e-6


class SphericalStatistics(ExtraStatistics):
    name = "spherical"

    def __init__(self, candidates: Mapping[int, Sequence[tuple[float, float]]], grid: RegionGrid):
        self.grid = grid
        words: list[int] = []
        latlon: list[tuple[float, float]] = []
        for word_id in sorted(candidates):
            for lat, lon in candidates[word_id]:
                words.append(word_id)
                latlon.append((float(lat), float(lon)))

        self.cand_word = np.array(words, dtype=np.int64)
        self.cand_latlon = np.array(latlon, dtype=np.float64).reshape(-1, 2)
        self.cand_xyz = np.array(
            [geographic_to_cartesian(lat, lon) for lat, lon in latlon], dtype=np.float64
        ).reshape(-1, 3)
        self.cand_region = np.array(
            [grid.region_of(lat, lon) for lat, lon in latlon], dtype=np.int64
        )

        self._corpus: Optional[TokenStream] = None
        self._start = np.zeros(0, dtype=np.int64)
        self._stop = np.zeros(0, dtype=np.int64)
        self.coord = np.zeros(0, dtype=np.int64)
        self.vector_sums = np.zeros((grid.n_regions, 3))
        self.toponym_counts = np.zeros(grid.n_regions, dtype=np.int64)
        self.candidate_counts = np.zeros(len(words), dtype=np.int64)

    @property
    def n_candidates(self) -> int:
        return int(self.cand_word.shape[0])

    def candidate_slice(self, word_id: int) -> slice:
        return slice(int(self._start[word_id]), int(self._stop[word_id]))

    def toponym_filter(self, n_words: int) -> np.ndarray:
        """W x R filter marking the region of every candidate of every word."""
        out = np.zeros((n_words, self.grid.n_regions), dtype=np.float64)
        if self.n_candidates and self.cand_word.max() >= n_words:
            raise DimensionMismatch(f"candidate word id {self.cand_word.max()} outside vocabulary of {n_words}")
        out[self.cand_word, self.cand_region] = 1.0
        return out

    # ── Hooks ──────────────────────────────────────────────────────────

    def bind(self, corpus: TokenStream, n_regions: int) -> None:
        if n_regions != self.grid.n_regions:
            raise DimensionMismatch(f"model has {n_regions} regions, grid has {self.grid.n_regions}")
        if self.n_candidates and self.cand_word.max() >= corpus.W:
            raise DimensionMismatch(f"candidate word id {self.cand_word.max()} outside vocabulary of {corpus.W}")

        self._corpus = corpus
        # cand_word is sorted, so each word's candidates are contiguous
        ids = np.arange(corpus.W)
        self._start = np.searchsorted(self.cand_word, ids, side="left")
        self._stop = np.searchsorted(self.cand_word, ids, side="right")
        self.coord = np.full(corpus.N, -1, dtype=np.int64)
        self.vector_sums = np.zeros((n_regions, 3))
        self.toponym_counts = np.zeros(n_regions, dtype=np.int64)
        self.candidate_counts = np.zeros(self.n_candidates, dtype=np.int64)

    def on_remove(self, token: int, region: int) -> None:
        c = self.coord[token]
        if c < 0:
            return
        self.vector_sums[region] -= self.cand_xyz[c]
        self.toponym_counts[region] -= 1
        self.candidate_counts[c] -= 1
        self.coord[token] = -1

    def on_add(self, token: int, region: int, rng: np.random.Generator) -> None:
        corpus = self._corpus
        if not corpus.is_toponym[token]:
            return
        span = self.candidate_slice(corpus.word_ids[token])
        inside = np.flatnonzero(self.cand_region[span] == region) + span.start
        if inside.size == 0:
            raise InvalidFilterState(
                f"token {token} placed in region {region} with no candidate coordinate there",
                token=token,
            )
        c = int(inside[rng.integers(inside.size)]) if inside.size > 1 else int(inside[0])
        self.coord[token] = c
        self.vector_sums[region] += self.cand_xyz[c]
        self.toponym_counts[region] += 1
        self.candidate_counts[c] += 1

    def snapshot(self) -> dict[str, np.ndarray]:
        return {
            "region_means": self.directional_means(),
            "kappa": self.concentrations(),
            "candidate_counts": self.candidate_counts.astype(np.float64),
        }

    # ── Summaries ──────────────────────────────────────────────────────

    def directional_means(self) -> np.ndarray:
        """Unit mean direction per region; zero rows for empty regions."""
        return unit_directions(self.vector_sums)

    def concentrations(self) -> np.ndarray:
        """von Mises-Fisher concentration estimate per region (0 when empty)."""
        return estimate_kappa(self.vector_sums, self.toponym_counts)

    def coordinate_tensor(self, counts: Optional[np.ndarray] = None) -> np.ndarray:
        """Dense region x word x candidate view of ``counts`` (default: current)."""
        counts = self.candidate_counts if counts is None else counts
        n_words = len(self._start)
        widths = self._stop - self._start
        k_max = int(widths.max()) if n_words else 0
        out = np.zeros((self.grid.n_regions, n_words, k_max), dtype=np.float64)
        k = np.arange(self.n_candidates) - self._start[self.cand_word]
        out[self.cand_region, self.cand_word, k] = counts
        return out

    def resolve_coordinates(self) -> dict[int, tuple[float, float]]:
        """(lat, lon) of the candidate each toponym token is currently tied to."""
        return {
            int(i): (float(self.cand_latlon[c, 0]), float(self.cand_latlon[c, 1]))
            for i, c in enumerate(self.coord)
            if c >= 0
        }


def unit_directions(means: np.ndarray) -> np.ndarray:
    """Rescale each row to unit length, leaving zero rows at zero."""
    means = np.asarray(means, dtype=np.float64)
    norms = np.linalg.norm(means, axis=-1, keepdims=True)
    out = np.zeros_like(means)
    np.divide(means, norms, out=out, where=norms > 0)
    return out


def estimate_kappa(vector_sums: np.ndarray, counts: np.ndarray, dim: int = 3) -> np.ndarray:
    """Banerjee et al. approximation kappa = rbar (p - rbar^2) / (1 - rbar^2)."""
    counts = np.asarray(counts, dtype=np.float64)
    lengths = np.linalg.norm(vector_sums, axis=-1)
    rbar = np.zeros_like(counts)
    np.divide(lengths, counts, out=rbar, where=counts > 0)
    rbar = np.clip(rbar, 0.0, MAX_RESULTANT_LENGTH)
    kappa = rbar * (dim - rbar**2) / (1.0 - rbar**2)
    kappa[counts <= 0] = 0.0
    return kappa


def region_centers(means: np.ndarray) -> list[Optional[tuple[float, float]]]:
    """(lat, lon) of each averaged mean direction, None where the region is empty."""
    out: list[Optional[tuple[float, float]]] = []
    for row in np.asarray(means):
        out.append(cartesian_to_geographic(row) if np.linalg.norm(row) > 0 else None)
    return out
