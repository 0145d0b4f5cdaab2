"""
Simulation model interface.

A model is a stateful object used by exactly one worker thread:

    model = ModelClass()
    model.set_rsr(rsr)                 # once
    model.set_parameters(geometry)     # once
    for sample in samples:
        model.set_bvs(sample)
        result = model()               # (n_bands + 2,) array

Configuration is done before the sample loop; models may cache
anything derived from it (resampling weights, angle terms, ...).
"""

from typing import Optional

import numpy as np

from ..io.rsr import SpectralResponseSet
from ..variables import AcquisitionGeometry, N_BV

N_DERIVED = 2  # fCover, fAPAR


class SimulationModel:
    """Base class for per-thread simulation models."""

    def __init__(self):
        self.rsr: Optional[SpectralResponseSet] = None
        self.geometry: Optional[AcquisitionGeometry] = None
        self.bvs: Optional[np.ndarray] = None

    @property
    def n_bands(self) -> int:
        return self.rsr.n_bands if self.rsr is not None else 0

    @property
    def output_size(self) -> int:
        return self.n_bands + N_DERIVED

    def set_rsr(self, rsr: SpectralResponseSet):
        self.rsr = rsr

    def set_parameters(self, geometry: AcquisitionGeometry):
        self.geometry = geometry

    def set_bvs(self, sample: np.ndarray):
        sample = np.asarray(sample, dtype=np.float64)
        if sample.shape != (N_BV,):
            raise ValueError(f"Expected {N_BV} biophysical variables, got shape {sample.shape}")
        self.bvs = sample

    def simulate(self) -> np.ndarray:
        raise NotImplementedError

    def __call__(self) -> np.ndarray:
        if self.rsr is None or self.geometry is None:
            raise RuntimeError("Model used before set_rsr() and set_parameters()")
        if self.bvs is None:
            raise RuntimeError("Model used before set_bvs()")
        return self.simulate()
