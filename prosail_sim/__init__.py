"""
prosail-sim: Batch PROSAIL Simulation
=====================================

Simulates sensor band reflectances, fCover and fAPAR for a table of
biophysical variable samples under one acquisition geometry. These
simulations are the training data of biophysical variable retrieval.

Modules:
    io: Sample tables, spectral responses, metadata angles, outputs
    simulation: Partitioning, workers, noise and batch orchestration
    utils: Configuration

Example:
    >>> from prosail_sim import BatchSimulator, SimulationParameters
    >>> params = SimulationParameters(
    ...     bv_file='bv_samples.txt', rsr_file='s2a.rsr', out_file='simus.txt',
    ...     solar_zenith=30.0, sensor_zenith=10.0, azimuth=0.0, threads=4)
    >>> results = BatchSimulator(params).run()
"""

__version__ = '1.0.0'

from .exceptions import ConfigurationError, SimulationError
from .variables import BVNames, AcquisitionGeometry, N_BV
from .io import parse_bv_sample_file, SpectralResponseSet, MetadataHelper, write_simulations
from .simulation import (
    BatchSimulator,
    SimulationParameters,
    SimulationModel,
    NoiseModel,
    partition,
    simulate_batch
)

__all__ = [
    'ConfigurationError',
    'SimulationError',
    'BVNames',
    'AcquisitionGeometry',
    'N_BV',
    'parse_bv_sample_file',
    'SpectralResponseSet',
    'MetadataHelper',
    'write_simulations',
    'BatchSimulator',
    'SimulationParameters',
    'SimulationModel',
    'NoiseModel',
    'partition',
    'simulate_batch'
]
