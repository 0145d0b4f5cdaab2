"""
File I/O for the simulation pipeline.

Inputs:
    - BV sample tables (samples)
    - Sensor relative spectral responses (rsr)
    - Product metadata angles (metadata)

Outputs:
    - Simulation tables (simulations)
"""

from .samples import parse_bv_sample_file, read_samples
from .rsr import SpectralResponseSet, count_columns
from .metadata import MetadataHelper, MeanAngles, relative_azimuth
from .simulations import write_simulations

__all__ = [
    'parse_bv_sample_file',
    'read_samples',
    'SpectralResponseSet',
    'count_columns',
    'MetadataHelper',
    'MeanAngles',
    'relative_azimuth',
    'write_simulations',
]
