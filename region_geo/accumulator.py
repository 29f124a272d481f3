from __future__ import annotations

import logging
from typing import Mapping, Optional

import numpy as np

from region_geo.errors import DimensionMismatch

logger = logging.getLogger(__name__)


class SampleAccumulator:
    """
    Running element-wise sums of named tables across collected samples.

    Storage is allocated lazily from the shapes seen on the first ``add``.
    ``normalize`` divides every sum by the sample count exactly once; later
    calls leave the averages untouched.
    """

    def __init__(self):
        self._sums: Optional[dict[str, np.ndarray]] = None
        self.count = 0
        self.normalized = False

    @property
    def allocated(self) -> bool:
        return self._sums is not None

    def add(self, tables: Mapping[str, np.ndarray]) -> None:
        if self.normalized:
            raise RuntimeError("cannot add samples after normalization")
        if self._sums is None:
            self._sums = {name: np.zeros(np.shape(t), dtype=np.float64) for name, t in tables.items()}
            logger.debug("Allocated sample accumulators for %s", sorted(self._sums))
        elif set(tables) != set(self._sums):
            raise DimensionMismatch(f"sample tables {sorted(tables)} differ from {sorted(self._sums)}")

        for name, table in tables.items():
            acc = self._sums[name]
            if np.shape(table) != acc.shape:
                raise DimensionMismatch(f"{name}: sample shape {np.shape(table)} differs from {acc.shape}")
            acc += table
        self.count += 1

    def normalize(self) -> None:
        if self.normalized or self._sums is None or self.count == 0:
            return
        for acc in self._sums.values():
            acc /= self.count
        self.normalized = True

    def get(self, name: str) -> np.ndarray:
        if self._sums is None:
            raise KeyError(name)
        return self._sums[name]

    def tables(self) -> dict[str, np.ndarray]:
        return dict(self._sums or {})
