"""
Pytest fixtures for the simulation tests.

Most tests run the batch engine with a deterministic linear model
instead of PROSAIL, so that expected outputs are known exactly.
"""

import threading

import numpy as np
import pytest

from prosail_sim.simulation.model import SimulationModel
from prosail_sim.variables import BVNames, N_BV


HEADER = " ".join(name.name for name in BVNames)


class LinearModel(SimulationModel):
    """Bands grow linearly with MLAI; fcover = CrownCover, fapar = Cab / 100."""

    created = []
    lock = threading.Lock()

    def __init__(self):
        super().__init__()
        with self.lock:
            type(self).created.append(threading.current_thread())

    def simulate(self):
        bv = self.bvs
        bands = (bv[BVNames.MLAI] * (1.0 + np.arange(self.n_bands))
                 + self.geometry.solar_zenith / 100.0)
        return np.concatenate([bands, [bv[BVNames.CrownCover], bv[BVNames.Cab] / 100.0]])


def expected_simulation(sample, n_bands, solar_zenith):
    """What LinearModel returns for one sample."""
    bands = sample[BVNames.MLAI] * (1.0 + np.arange(n_bands)) + solar_zenith / 100.0
    return np.concatenate([bands, [sample[BVNames.CrownCover], sample[BVNames.Cab] / 100.0]])


@pytest.fixture
def linear_model():
    """Fresh LinearModel subclass with its own instance log."""
    class Model(LinearModel):
        created = []
    return Model


@pytest.fixture
def failing_model():
    """Model that fails on samples with a negative MLAI."""
    class Model(LinearModel):
        created = []

        def simulate(self):
            if self.bvs[BVNames.MLAI] < 0:
                raise ArithmeticError("negative leaf area index")
            return super().simulate()
    return Model


def make_samples(n_samples):
    """Distinct, easily recognizable sample rows."""
    samples = np.zeros((n_samples, N_BV))
    idx = np.arange(n_samples)
    samples[:, BVNames.MLAI] = 0.1 * idx
    samples[:, BVNames.ALA] = 60.0
    samples[:, BVNames.CrownCover] = 0.5 + 0.001 * idx
    samples[:, BVNames.HsD] = 0.2
    samples[:, BVNames.N] = 1.5
    samples[:, BVNames.Cab] = 20.0 + idx
    samples[:, BVNames.Car] = 8.0
    samples[:, BVNames.Cdm] = 0.005
    samples[:, BVNames.CwRel] = 0.75
    samples[:, BVNames.Cbp] = 0.1
    samples[:, BVNames.Bs] = 1.0
    return samples


def write_bv_file(path, samples):
    """Write a BV sample file with a header line."""
    lines = [HEADER]
    for row in samples:
        lines.append(" ".join(repr(float(v)) for v in row))
    path.write_text("\n".join(lines) + "\n")
    return path


def write_rsr_file(path, n_bands):
    """
    Boxcar responses of n_bands bands on a 0.40-2.50 µm grid.

    Band b covers [0.45 + 0.1 b, 0.50 + 0.1 b] µm.
    """
    wl = np.round(np.arange(0.40, 2.505, 0.005), 3)
    cols = [wl, np.full(len(wl), 1500.0)]
    for b in range(n_bands):
        lo, hi = 0.45 + 0.1 * b, 0.50 + 0.1 * b
        cols.append(((wl >= lo - 1e-9) & (wl <= hi + 1e-9)).astype(float))
    np.savetxt(path, np.column_stack(cols), fmt='%.6f')
    return path


@pytest.fixture
def rsr_file(tmp_path):
    """3-band RSR file."""
    return write_rsr_file(tmp_path / "sensor.rsr", 3)


@pytest.fixture
def bv_file(tmp_path):
    """BV sample file with 2 samples."""
    return write_bv_file(tmp_path / "bv_samples.txt", make_samples(2))
