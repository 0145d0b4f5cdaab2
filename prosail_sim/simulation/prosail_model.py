"""
PROSAIL Canopy Reflectance Model

Couples the PROSPECT leaf optical properties model with the SAIL canopy
bidirectional reflectance model, through the `prosail` package:

    Leaf biochemistry (N, Cab, Car, Cbp, Cw, Cdm)
           │
           ▼
    PROSPECT → leaf reflectance / transmittance
           │
           ▼
    SAIL (LAI, ALA, hot spot, soil, geometry)
           │
           ▼
    Canopy reflectance 400-2500 nm (1 nm)
           │
           ▼
    Sensor bands (RSR weighted)

Two derived variables are appended to the band reflectances:

    fCover: fraction of ground covered by green vegetation seen from nadir
        fCover = CC · (1 - exp(-k(0) · LAI / CC))

    fAPAR: fraction of PAR (400-700 nm) absorbed by the canopy at the
        fAPAR solar zenith
        fAPAR = CC · (1 - exp(-k(θs) · LAI / CC)) · (1 - ρ_PAR)

with CC the crown cover, ρ_PAR the mean directional-hemispherical canopy
reflectance over PAR, and k(θ) the extinction coefficient of an
ellipsoidal leaf angle distribution (Campbell, 1986):

    k(θ) = √(x² + tan²θ) / (x + 1.774 (x + 1.182)^-0.733)

where x is derived from the average leaf angle (Campbell, 1990):

    ALA = 9.65 (3 + x)^-1.65    (ALA in radians)

References:
    - Jacquemoud et al., 2009: PROSPECT + SAIL models, RSE 113
    - Campbell, 1986: Extinction coefficients for radiation in plant
      canopies calculated using an ellipsoidal inclination angle
      distribution, Agric. For. Meteorol. 36
    - Campbell, 1990: Derivation of an angle density function for canopies
      with ellipsoidal leaf angle distributions, Agric. For. Meteorol. 49
"""

import numpy as np
import prosail

from ..variables import BVNames
from .model import SimulationModel

# PROSAIL output grid
WAVELENGTHS_NM = np.arange(400, 2501, dtype=np.float64)
PAR_MASK = WAVELENGTHS_NM <= 700

MIN_CROWN_COVER = 0.01
MIN_ALA_DEG = 1.0


def ellipsoidal_x(ala_deg: float) -> float:
    """Ellipsoidal distribution parameter from the average leaf angle."""
    ala_rad = np.radians(max(ala_deg, MIN_ALA_DEG))
    x = (ala_rad / 9.65) ** (-1.0 / 1.65) - 3.0
    return max(x, 0.01)


def extinction_coefficient(zenith_deg: float, x: float) -> float:
    """Canopy extinction coefficient k(θ) for an ellipsoidal distribution."""
    tan_t = np.tan(np.radians(zenith_deg))
    return float(np.sqrt(x ** 2 + tan_t ** 2) / (x + 1.774 * (x + 1.182) ** -0.733))


class ProSailSimulator(SimulationModel):
    """
    PROSAIL simulation of band reflectances, fCover and fAPAR.

    One instance per worker thread; the resampling weights and geometry
    are cached when the model is configured.
    """

    def __init__(self, prospect_version: str = "5", psoil: float = 1.0):
        """
        Args:
            prospect_version: PROSPECT version passed to `prosail` ("5" or "D")
            psoil: Soil moisture factor (1 = dry soil spectrum)
        """
        super().__init__()
        self.prospect_version = prospect_version
        self.psoil = psoil
        self._weights = None

    def set_rsr(self, rsr):
        super().set_rsr(rsr)
        self._weights = rsr.band_weights(WAVELENGTHS_NM)

    def _canopy(self, factor: str, tts: float) -> np.ndarray:
        bv = self.bvs
        cdm = bv[BVNames.Cdm]
        cw_rel = min(bv[BVNames.CwRel], 0.999)
        cw = cdm * cw_rel / (1.0 - cw_rel)

        return prosail.run_prosail(
            bv[BVNames.N], bv[BVNames.Cab], bv[BVNames.Car], bv[BVNames.Cbp],
            cw, cdm, bv[BVNames.MLAI], bv[BVNames.ALA], bv[BVNames.HsD],
            tts, self.geometry.sensor_zenith, self.geometry.relative_azimuth,
            prospect_version=self.prospect_version,
            typelidf=2,
            factor=factor,
            rsoil=bv[BVNames.Bs],
            psoil=self.psoil,
        )

    def simulate(self) -> np.ndarray:
        bv = self.bvs
        geo = self.geometry

        reflectance = self._canopy("SDR", geo.solar_zenith)
        bands = reflectance @ self._weights

        lai = bv[BVNames.MLAI]
        crown = min(max(bv[BVNames.CrownCover], MIN_CROWN_COVER), 1.0)
        x = ellipsoidal_x(bv[BVNames.ALA])

        fcover = crown * (1.0 - np.exp(-extinction_coefficient(0.0, x) * lai / crown))

        albedo = self._canopy("DHR", geo.solar_zenith_fapar)
        par_albedo = float(np.mean(albedo[PAR_MASK]))
        k_sun = extinction_coefficient(geo.solar_zenith_fapar, x)
        fapar = crown * (1.0 - np.exp(-k_sun * lai / crown)) * (1.0 - par_albedo)

        return np.concatenate([bands, [fcover, fapar]])
