"""
Pluggable per-variant statistics.

The sweep loop is shared by every model variant; a variant that tracks more
than the three count tables hooks into each token move through this interface
and contributes extra tables to every collected sample.
"""

from __future__ import annotations

import numpy as np

from region_geo.corpus import TokenStream


class ExtraStatistics:
    """Planar model: nothing beyond the count tables."""

    name = "planar"

    def bind(self, corpus: TokenStream, n_regions: int) -> None:
        """Check dimensions against the corpus before any token is placed."""

    def on_remove(self, token: int, region: int) -> None:
        """Token ``token`` is leaving ``region``."""

    def on_add(self, token: int, region: int, rng: np.random.Generator) -> None:
        """Token ``token`` has just been placed in ``region``."""

    def snapshot(self) -> dict[str, np.ndarray]:
        """Current extra tables to accumulate, keyed by name."""
        return {}
