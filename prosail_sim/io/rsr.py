"""
Relative Spectral Response (RSR) files.

A sensor is described by one text file of columns:

    wavelength  solar_irradiance  band_1  band_2  ...  band_n

The first two columns are not bands, so the number of bands is the
column count minus two. Wavelengths are normally in micrometers (as in
the OTB SatelliteRSR files); they are converted to nanometers when all
of them are below 100.

Band-equivalent reflectance is the response- and irradiance-weighted
mean of a high resolution spectrum:

    ρ_b = Σ ρ(λ) · S_b(λ) · E(λ) / Σ S_b(λ) · E(λ)
"""

import logging
from pathlib import Path
from typing import List, Tuple, Union

import numpy as np
from scipy.interpolate import interp1d

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

NON_BAND_COLUMNS = 2


def count_columns(filepath: Union[str, Path]) -> int:
    """Number of columns on the first data line of a text table."""
    with open(filepath, 'r') as f:
        for line in f:
            content = line.split('#', 1)[0].strip()
            if content:
                return len(content.split())
    return 0


class SpectralResponseSet:
    """Per-band spectral responses of a sensor, in file column order."""

    def __init__(self,
                 wavelengths_nm: np.ndarray,
                 solar_irradiance: np.ndarray,
                 responses: np.ndarray):
        """
        Args:
            wavelengths_nm: Wavelength grid (nm), shape (n_wavelengths,)
            solar_irradiance: Solar irradiance on the same grid
            responses: Band responses, shape (n_wavelengths, n_bands)
        """
        responses = np.asarray(responses, dtype=np.float64)
        if responses.ndim == 1:
            responses = responses[:, np.newaxis]
        if responses.shape[1] < 1:
            raise ConfigurationError("Spectral response set has no bands")
        if responses.shape[0] != len(wavelengths_nm):
            raise ConfigurationError(
                f"Response table has {responses.shape[0]} rows for "
                f"{len(wavelengths_nm)} wavelengths")

        self.wavelengths_nm = np.asarray(wavelengths_nm, dtype=np.float64)
        self.solar_irradiance = np.asarray(solar_irradiance, dtype=np.float64)
        self.responses = responses

        for arr in (self.wavelengths_nm, self.solar_irradiance, self.responses):
            arr.flags.writeable = False

    @classmethod
    def load(cls, filepath: Union[str, Path]) -> 'SpectralResponseSet':
        """
        Load an RSR text file.

        Raises:
            OSError: If the file cannot be read
            ConfigurationError: If the file describes no band or holds
                non-numeric values
        """
        filepath = Path(filepath)
        cols = count_columns(filepath)
        n_bands = cols - NON_BAND_COLUMNS
        if n_bands < 1:
            raise ConfigurationError(
                f"{filepath} has {cols} columns; expected wavelength, solar "
                f"irradiance and at least one band")

        try:
            table = np.loadtxt(filepath, comments='#', ndmin=2)
        except ValueError as e:
            raise ConfigurationError(f"Could not parse RSR file {filepath}: {e}") from e
        wavelengths = table[:, 0]
        if np.all(wavelengths < 100):
            wavelengths = wavelengths * 1000.0

        order = np.argsort(wavelengths, kind='stable')
        logger.debug(f"Loaded RSR {filepath.name}: {len(wavelengths)} samples, "
                     f"{n_bands} bands")
        return cls(wavelengths[order], table[order, 1], table[order, NON_BAND_COLUMNS:])

    @property
    def n_bands(self) -> int:
        return self.responses.shape[1]

    def interval(self, band: int) -> Tuple[float, float]:
        """Wavelength bounds (nm) where the band response is positive."""
        support = self.wavelengths_nm[self.responses[:, band] > 0]
        if len(support) == 0:
            return (float('nan'), float('nan'))
        return (float(support.min()), float(support.max()))

    def intervals(self) -> List[Tuple[float, float]]:
        return [self.interval(b) for b in range(self.n_bands)]

    def describe(self) -> str:
        """Band table for logging."""
        lines = ["Bands for sensor"]
        for b, (lo, hi) in enumerate(self.intervals()):
            lines.append(f"{b} {lo:g} {hi:g}")
        return "\n".join(lines)

    def band_weights(self, target_wavelengths_nm: np.ndarray) -> np.ndarray:
        """
        Normalized resampling weights on a target grid.

        Args:
            target_wavelengths_nm: Grid of the spectra to be resampled

        Returns:
            Weights (n_target, n_bands); each column sums to 1

        Raises:
            ConfigurationError: If a band does not overlap the target grid
        """
        target = np.asarray(target_wavelengths_nm, dtype=np.float64)
        weighted = self.responses * self.solar_irradiance[:, np.newaxis]
        resample = interp1d(self.wavelengths_nm, weighted, axis=0,
                            kind='linear', bounds_error=False, fill_value=0.0)
        weights = np.clip(resample(target), 0.0, None)

        totals = weights.sum(axis=0)
        empty = np.flatnonzero(totals <= 0)
        if len(empty) > 0:
            raise ConfigurationError(
                f"Bands {empty.tolist()} do not overlap the simulated range "
                f"{target[0]:g}-{target[-1]:g} nm")
        return weights / totals

    def resample(self, spectrum: np.ndarray,
                 target_wavelengths_nm: np.ndarray) -> np.ndarray:
        """Band-equivalent values of a spectrum sampled on a target grid."""
        return np.asarray(spectrum) @ self.band_weights(target_wavelengths_nm)
