from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from region_geo.corpus import TokenStream


@dataclass
class CountTables:
    """
    Running sums of the current region assignments.

    The three tables always move together: every change to one token's region
    is a full ``remove`` followed by a full ``add``.
    """

    region_counts: np.ndarray       # (R,)
    region_by_doc: np.ndarray       # (D, R)
    word_by_region: np.ndarray      # (W, R)

    @classmethod
    def zeros(cls, n_words: int, n_docs: int, n_regions: int) -> "CountTables":
        return cls(
            region_counts=np.zeros(n_regions, dtype=np.int64),
            region_by_doc=np.zeros((n_docs, n_regions), dtype=np.int64),
            word_by_region=np.zeros((n_words, n_regions), dtype=np.int64),
        )

    @property
    def n_regions(self) -> int:
        return int(self.region_counts.shape[0])

    def add(self, word_id: int, doc_id: int, region: int) -> None:
        self.region_counts[region] += 1
        self.region_by_doc[doc_id, region] += 1
        self.word_by_region[word_id, region] += 1

    def remove(self, word_id: int, doc_id: int, region: int) -> None:
        self.region_counts[region] -= 1
        self.region_by_doc[doc_id, region] -= 1
        self.word_by_region[word_id, region] -= 1

    def snapshot(self) -> dict[str, np.ndarray]:
        return {
            "region_counts": self.region_counts.copy(),
            "region_by_doc": self.region_by_doc.copy(),
            "word_by_region": self.word_by_region.copy(),
        }

    def is_consistent(self, corpus: TokenStream) -> bool:
        """True when the tables equal a fresh recount of ``corpus.region``."""
        fresh = CountTables.zeros(corpus.W, corpus.D, self.n_regions)
        active = np.flatnonzero(~corpus.is_stopword)
        regions = corpus.region[active]
        if (regions < 0).any():
            return False
        np.add.at(fresh.region_counts, regions, 1)
        np.add.at(fresh.region_by_doc, (corpus.doc_ids[active], regions), 1)
        np.add.at(fresh.word_by_region, (corpus.word_ids[active], regions), 1)
        return (
            np.array_equal(fresh.region_counts, self.region_counts)
            and np.array_equal(fresh.region_by_doc, self.region_by_doc)
            and np.array_equal(fresh.word_by_region, self.word_by_region)
        )
