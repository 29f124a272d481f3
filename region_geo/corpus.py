"""
Corpus token stream.

Flat, position-indexed arrays describing every token of the corpus. The four
attribute arrays are fixed after load; ``region`` is owned by the sampler and
rewritten on every sweep. Stopword tokens carry ``NO_REGION``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

import numpy as np

from region_geo.errors import DimensionMismatch

NO_REGION = -1


@dataclass
class TokenStream:
    word_ids: np.ndarray
    doc_ids: np.ndarray
    is_toponym: np.ndarray
    is_stopword: np.ndarray
    vocab_size: int = 0
    doc_count: int = 0
    region: np.ndarray = field(init=False)

    def __post_init__(self) -> None:
        self.word_ids = np.asarray(self.word_ids, dtype=np.int64)
        self.doc_ids = np.asarray(self.doc_ids, dtype=np.int64)
        self.is_toponym = np.asarray(self.is_toponym, dtype=bool)
        self.is_stopword = np.asarray(self.is_stopword, dtype=bool)

        n = self.word_ids.shape[0]
        for name in ("word_ids", "doc_ids", "is_toponym", "is_stopword"):
            arr = getattr(self, name)
            if arr.ndim != 1 or arr.shape[0] != n:
                raise DimensionMismatch(f"{name} has shape {arr.shape}, expected ({n},)")

        active = ~self.is_stopword
        if n and (self.word_ids[active] < 0).any():
            raise DimensionMismatch("word ids must be non-negative")
        if n and (self.doc_ids < 0).any():
            raise DimensionMismatch("document ids must be non-negative")

        # Stopword ids live outside the region vocabulary and are never indexed
        needed_w = int(self.word_ids[active].max()) + 1 if active.any() else 0
        needed_d = int(self.doc_ids.max()) + 1 if n else 0
        if self.vocab_size == 0:
            self.vocab_size = needed_w
        elif self.vocab_size < needed_w:
            raise DimensionMismatch(f"vocab_size={self.vocab_size} but word id {needed_w - 1} occurs")
        if self.doc_count == 0:
            self.doc_count = needed_d
        elif self.doc_count < needed_d:
            raise DimensionMismatch(f"doc_count={self.doc_count} but document id {needed_d - 1} occurs")

        self.region = np.full(n, NO_REGION, dtype=np.int64)

    @classmethod
    def from_records(
        cls,
        records: Iterable[tuple[int, int, bool, bool]],
        vocab_size: int = 0,
        doc_count: int = 0,
    ) -> "TokenStream":
        """Build a stream from ``(word_id, doc_id, is_toponym, is_stopword)`` rows."""
        rows = list(records)
        if not rows:
            return cls(
                np.zeros(0, dtype=np.int64),
                np.zeros(0, dtype=np.int64),
                np.zeros(0, dtype=bool),
                np.zeros(0, dtype=bool),
                vocab_size=vocab_size,
                doc_count=doc_count,
            )
        cols = list(zip(*rows))
        return cls(
            np.array(cols[0]),
            np.array(cols[1]),
            np.array(cols[2]),
            np.array(cols[3]),
            vocab_size=vocab_size,
            doc_count=doc_count,
        )

    # ── Sizes ──────────────────────────────────────────────────────────

    @property
    def N(self) -> int:
        return int(self.word_ids.shape[0])

    @property
    def W(self) -> int:
        return self.vocab_size

    @property
    def D(self) -> int:
        return self.doc_count

    @property
    def n_active(self) -> int:
        """Number of non-stopword tokens."""
        return int((~self.is_stopword).sum())

    def doc_lengths(self) -> np.ndarray:
        """Non-stopword token count per document."""
        return np.bincount(self.doc_ids[~self.is_stopword], minlength=self.D)

    def toponym_positions(self, word_id: Optional[int] = None) -> np.ndarray:
        mask = self.is_toponym & ~self.is_stopword
        if word_id is not None:
            mask &= self.word_ids == word_id
        return np.flatnonzero(mask)
