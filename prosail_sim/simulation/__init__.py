"""
Simulation Module

Batch execution of a canopy reflectance model over BV samples.

Components:
    - partition: Contiguous, order preserving split of the samples
    - noise: Optional per-band Gaussian noise
    - worker: Per-thread simulation loop
    - batch: Orchestration from input files to output file
    - prosail_model: PROSAIL model (needs the `prosail` package)
"""

from .partition import Partition, partition, resolve_thread_count, available_threads
from .noise import NoiseModel
from .model import SimulationModel, N_DERIVED
from .worker import SimulationWorker
from .batch import (
    BatchSimulator,
    SimulationParameters,
    simulate_batch,
    resolve_geometry
)

__all__ = [
    'Partition',
    'partition',
    'resolve_thread_count',
    'available_threads',
    'NoiseModel',
    'SimulationModel',
    'N_DERIVED',
    'SimulationWorker',
    'BatchSimulator',
    'SimulationParameters',
    'simulate_batch',
    'resolve_geometry'
]
