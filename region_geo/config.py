"""
Central configuration loaded from environment variables with sensible defaults.
Values are validated on construction; bad hyperparameters fail immediately.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from functools import lru_cache

from region_geo.errors import InvalidHyperparameter


@dataclass(frozen=True)
class SamplerConfig:
    # Dirichlet priors on region-by-document and word-by-region
    alpha: float = float(os.getenv("REGION_ALPHA", "0.1"))
    beta: float = float(os.getenv("REGION_BETA", "0.1"))
    seed: int = int(os.getenv("REGION_SEED", "0"))

    def __post_init__(self) -> None:
        for name in ("alpha", "beta"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise InvalidHyperparameter(f"{name} must be a positive finite number, got {value!r}")


@dataclass(frozen=True)
class AnnealingConfig:
    initial_temperature: float = float(os.getenv("ANNEAL_INITIAL_TEMPERATURE", "1.0"))
    cooling_iterations: int = int(os.getenv("ANNEAL_COOLING_ITERATIONS", "0"))
    burn_in: int = int(os.getenv("ANNEAL_BURN_IN", "100"))
    lag: int = int(os.getenv("ANNEAL_LAG", "10"))
    samples: int = int(os.getenv("ANNEAL_SAMPLES", "10"))
    # 0 = just enough sweeps to collect every sample
    iterations: int = int(os.getenv("ANNEAL_ITERATIONS", "0"))

    def __post_init__(self) -> None:
        t0 = self.initial_temperature
        if not math.isfinite(t0) or t0 <= 0:
            raise InvalidHyperparameter(f"initial_temperature must be positive, got {t0!r}")
        if self.cooling_iterations < 0 or self.burn_in < 0 or self.iterations < 0:
            raise InvalidHyperparameter("iteration counts must be non-negative")
        if self.lag < 1:
            raise InvalidHyperparameter(f"lag must be at least 1, got {self.lag}")
        if self.samples < 0:
            raise InvalidHyperparameter(f"samples must be non-negative, got {self.samples}")
        if self.iterations == 0 and self.total_iterations == 0:
            raise InvalidHyperparameter("annealing schedule runs zero iterations")

    @property
    def total_iterations(self) -> int:
        if self.iterations:
            return self.iterations
        return self.burn_in + self.cooling_iterations + self.lag * self.samples


@dataclass(frozen=True)
class RegionConfig:
    degrees_per_region: float = float(os.getenv("REGION_DEGREES", "3.0"))

    def __post_init__(self) -> None:
        d = self.degrees_per_region
        if not math.isfinite(d) or d <= 0 or d > 180:
            raise InvalidHyperparameter(f"degrees_per_region must be in (0, 180], got {d!r}")


@dataclass(frozen=True)
class Settings:
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    annealing: AnnealingConfig = field(default_factory=AnnealingConfig)
    regions: RegionConfig = field(default_factory=RegionConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    env: str = os.getenv("APP_ENV", "development")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
