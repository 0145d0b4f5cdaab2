"""
Additive Band Noise

Simulated reflectances can be perturbed to mimic sensor noise before
they are used to train retrieval models:

    ρ'_b = ρ_b + ε_b,    ε_b ~ Normal(0, σ_b)

Each band has its own independent distribution. The derived variables
appended after the bands (fCover, fAPAR) are never perturbed.

The configured per-band value ("noise variance" on the command line) is
used directly as the spread parameter of the normal distribution, as in
the simulation files this tool has always produced.

Randomness:
    Every worker thread owns its generator. Without a seed, generators
    are seeded from OS entropy and runs are not reproducible. With a
    seed, one child seed is spawned per worker, so a rerun with the same
    seed and thread count gives identical noise.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class NoiseModel:
    """Per-band Gaussian noise scales."""
    scales: np.ndarray

    @property
    def n_bands(self) -> int:
        return len(self.scales)

    @classmethod
    def from_spec(cls,
                  values: Sequence[Union[str, float]],
                  n_bands: int) -> 'NoiseModel':
        """
        Validate a noise specification against the band count.

        Args:
            values: One value (broadcast to all bands) or one per band
            n_bands: Number of spectral bands

        Raises:
            ConfigurationError: On a count mismatch, or a non-numeric or
                negative value
        """
        values = list(values)
        if len(values) == 1:
            values = values * n_bands
            logger.info(f"All noise variances initialized to {values[0]}")
        elif len(values) != n_bands:
            raise ConfigurationError(
                f"Number of noise variances ({len(values)}) does not match "
                f"number of spectral bands: {n_bands}")

        try:
            scales = np.array([float(v) for v in values], dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid noise variance: {e}") from e
        if np.any(scales < 0) or not np.all(np.isfinite(scales)):
            raise ConfigurationError(
                f"Noise variances must be finite and non-negative: {scales.tolist()}")

        for b, s in enumerate(scales):
            logger.debug(f"Noise variance for band {b} equal to {s:g}")

        scales.flags.writeable = False
        return cls(scales)

    @staticmethod
    def generator(seed: Optional[np.random.SeedSequence] = None) -> np.random.Generator:
        """New generator for one worker; OS entropy when seed is None."""
        if seed is None:
            seed = np.random.SeedSequence()
        return np.random.default_rng(seed)

    @staticmethod
    def worker_seeds(seed: Optional[int], n_workers: int) -> list:
        """One independent seed sequence per worker, or Nones."""
        if seed is None:
            return [None] * n_workers
        return np.random.SeedSequence(seed).spawn(n_workers)

    def apply(self, result: np.ndarray, rng: np.random.Generator) -> np.ndarray:
        """
        Add noise to the band values of one simulation, in place.

        Args:
            result: Simulation (n_bands + 2,)
            rng: Worker generator

        Returns:
            The same array
        """
        result[:self.n_bands] += rng.normal(0.0, self.scales)
        return result
