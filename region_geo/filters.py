"""
Compatibility filters restricting which regions a token may occupy.

  - ``toponym`` (W x R): word w, used as a toponym, may sit in region r.
    Derived from the gazetteer candidates of the place name.
  - ``active_by_doc`` (D x R): region r is eligible at all in document d.

Both are dense 0/1 matrices and read-only while sampling.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

import numpy as np

from region_geo.corpus import TokenStream
from region_geo.errors import DimensionMismatch, InvalidFilterState

logger = logging.getLogger(__name__)


@dataclass
class RegionFilters:
    toponym: np.ndarray
    active_by_doc: np.ndarray

    def __post_init__(self) -> None:
        self.toponym = _as_indicator(self.toponym, "toponym")
        self.active_by_doc = _as_indicator(self.active_by_doc, "active_by_doc")
        if self.toponym.shape[1] != self.active_by_doc.shape[1]:
            raise DimensionMismatch(
                f"toponym filter has {self.toponym.shape[1]} regions, "
                f"document filter has {self.active_by_doc.shape[1]}"
            )

    @property
    def n_regions(self) -> int:
        return int(self.toponym.shape[1])

    def validate(self, corpus: TokenStream, n_regions: int) -> None:
        """Reject filters whose shape disagrees with the corpus (no truncation, no padding)."""
        expected_t = (corpus.W, n_regions)
        expected_d = (corpus.D, n_regions)
        if self.toponym.shape != expected_t:
            raise DimensionMismatch(f"toponym filter is {self.toponym.shape}, expected {expected_t}")
        if self.active_by_doc.shape != expected_d:
            raise DimensionMismatch(f"document filter is {self.active_by_doc.shape}, expected {expected_d}")

    def legal_mask(self, word_id: int, doc_id: int, is_toponym: bool) -> np.ndarray:
        if is_toponym:
            return self.toponym[word_id] * self.active_by_doc[doc_id]
        return self.active_by_doc[doc_id]

    def find_illegal_token(self, corpus: TokenStream) -> int | None:
        """Position of the first non-stopword token with no legal region, if any."""
        for i in np.flatnonzero(~corpus.is_stopword):
            mask = self.legal_mask(corpus.word_ids[i], corpus.doc_ids[i], corpus.is_toponym[i])
            if not mask.any():
                return int(i)
        return None

    def require_legal(self, corpus: TokenStream) -> None:
        bad = self.find_illegal_token(corpus)
        if bad is not None:
            raise InvalidFilterState(
                f"token {bad} (word {corpus.word_ids[bad]}, document {corpus.doc_ids[bad]}) "
                "has no legal region",
                token=bad,
            )


def _as_indicator(matrix, name: str) -> np.ndarray:
    arr = np.asarray(matrix)
    if arr.ndim != 2:
        raise DimensionMismatch(f"{name} filter must be 2-D, got shape {arr.shape}")
    if arr.size and not np.isin(arr, (0, 1)).all():
        raise InvalidFilterState(f"{name} filter must contain only 0 and 1")
    return arr.astype(np.float64)


# ── Builders ───────────────────────────────────────────────────────────

def toponym_filter_from_regions(
    word_regions: Mapping[int, Iterable[int]],
    n_words: int,
    n_regions: int,
) -> np.ndarray:
    """W x R filter with a 1 for every candidate region of each toponym word."""
    out = np.zeros((n_words, n_regions), dtype=np.float64)
    for word_id, regions in word_regions.items():
        if not 0 <= word_id < n_words:
            raise DimensionMismatch(f"word id {word_id} outside vocabulary of {n_words}")
        for r in regions:
            if not 0 <= r < n_regions:
                raise DimensionMismatch(f"region {r} outside 0..{n_regions - 1} for word {word_id}")
            out[word_id, r] = 1.0
    return out


def document_filter_from_toponyms(corpus: TokenStream, toponym_filter: np.ndarray) -> np.ndarray:
    """
    D x R filter enabling the regions with toponym evidence in each document.

    A document without any toponym (or whose toponyms have no candidates)
    keeps every region active.
    """
    n_regions = toponym_filter.shape[1]
    out = np.zeros((corpus.D, n_regions), dtype=np.float64)
    for i in corpus.toponym_positions():
        out[corpus.doc_ids[i]] = np.maximum(out[corpus.doc_ids[i]], toponym_filter[corpus.word_ids[i]])

    empty = out.sum(axis=1) == 0
    if empty.any():
        logger.debug("%d documents without toponym evidence keep all regions active", int(empty.sum()))
        out[empty] = 1.0
    return out
