"""
Biophysical Variables and Acquisition Geometry

A biophysical variable (BV) sample is one row of numbers in a fixed,
canonical order:

    MLAI        Mean leaf area index (m²/m²)
    ALA         Average leaf inclination angle (degrees)
    CrownCover  Fraction of ground covered by crowns (0-1)
    HsD         Hot spot parameter
    N           Leaf structure parameter
    Cab         Chlorophyll a+b content (µg/cm²)
    Car         Carotenoid content (µg/cm²)
    Cdm         Dry matter content (g/cm²)
    CwRel       Relative water content, Cw / (Cw + Cdm)
    Cbp         Brown pigments
    Bs          Soil brightness

The order matches the columns of the sample files produced by the BV
input generation step, so files are read positionally.
"""

from enum import IntEnum
from dataclasses import dataclass
from typing import Optional


class BVNames(IntEnum):
    """Column index of each biophysical variable in a sample row."""
    MLAI = 0
    ALA = 1
    CrownCover = 2
    HsD = 3
    N = 4
    Cab = 5
    Car = 6
    Cdm = 7
    CwRel = 8
    Cbp = 9
    Bs = 10


N_BV = len(BVNames)


@dataclass(frozen=True)
class AcquisitionGeometry:
    """
    Observation geometry shared by every sample of a batch.

    All angles in degrees. ``solar_zenith_fapar`` is the sun position
    used for the fAPAR computation; it defaults to ``solar_zenith``.
    """
    solar_zenith: float
    sensor_zenith: float
    relative_azimuth: float
    solar_zenith_fapar: Optional[float] = None

    def __post_init__(self):
        if self.solar_zenith_fapar is None:
            object.__setattr__(self, 'solar_zenith_fapar', self.solar_zenith)

    def with_angles(self,
                    solar_zenith: float,
                    sensor_zenith: float,
                    relative_azimuth: float) -> 'AcquisitionGeometry':
        """Copy with new TTS/TTO/PSI; the fAPAR solar zenith is kept."""
        return AcquisitionGeometry(
            solar_zenith=solar_zenith,
            sensor_zenith=sensor_zenith,
            relative_azimuth=relative_azimuth,
            solar_zenith_fapar=self.solar_zenith_fapar,
        )
