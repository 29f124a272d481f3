"""
Pydantic models for training summaries.
These are pure data objects built from a trained posterior.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

import numpy as np
from pydantic import BaseModel, Field

from region_geo.model import Posterior


class Variant(str, Enum):
    PLANAR = "planar"
    SPHERICAL = "spherical"


class RegionSummary(BaseModel):
    region: int = Field(..., ge=0)
    mass: float = Field(..., ge=0.0)
    share: float = Field(..., ge=0.0, le=1.0)
    top_words: list[int] = Field(default_factory=list)
    # Spherical variant only
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    kappa: Optional[float] = None


class ResolvedToponym(BaseModel):
    token: int
    word_id: int
    word: Optional[str] = None
    region: int
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


class TrainingSummary(BaseModel):
    variant: Variant
    tokens: int
    words: int
    documents: int
    regions: int
    iterations: int
    samples: int
    averaged: bool
    top_regions: list[RegionSummary] = Field(default_factory=list)
    toponyms: list[ResolvedToponym] = Field(default_factory=list)

    @classmethod
    def from_posterior(
        cls,
        posterior: Posterior,
        variant: Variant,
        tokens: int,
        top_k: int = 10,
        top_words: int = 5,
        centers: Optional[list[Optional[tuple[float, float]]]] = None,
    ) -> "TrainingSummary":
        counts = posterior.region_counts
        total = float(counts.sum())
        kappa = posterior.extra.get("kappa")

        summaries: list[RegionSummary] = []
        for r in np.argsort(-counts, kind="stable")[:top_k]:
            r = int(r)
            if counts[r] <= 0:
                break
            column = posterior.word_by_region[:, r]
            words = [int(w) for w in np.argsort(-column, kind="stable")[:top_words] if column[w] > 0]
            center = centers[r] if centers else None
            summaries.append(
                RegionSummary(
                    region=r,
                    mass=float(counts[r]),
                    share=min(1.0, float(counts[r]) / total) if total else 0.0,
                    top_words=words,
                    latitude=center[0] if center else None,
                    longitude=center[1] if center else None,
                    kappa=float(kappa[r]) if kappa is not None else None,
                )
            )

        return cls(
            variant=variant,
            tokens=tokens,
            words=posterior.word_by_region.shape[0],
            documents=posterior.region_by_doc.shape[0],
            regions=counts.shape[0],
            iterations=posterior.iterations,
            samples=posterior.samples,
            averaged=posterior.averaged,
            top_regions=summaries,
        )
