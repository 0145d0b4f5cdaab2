"""
Simulation output files.

One line per sample, in sample order. Each line holds the band
reflectances followed by fCover and fAPAR, every value followed by a
single space:

    0.0412 0.0687 0.0391 0.312 0.605 0.552 \n
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_PRECISION = 6


def write_simulations(filepath: Union[str, Path],
                      simulations: np.ndarray,
                      precision: int = DEFAULT_PRECISION) -> Path:
    """
    Write simulation results, one sample per line.

    Args:
        filepath: Output text file (created or truncated)
        simulations: Results (n_samples, n_bands + 2), in sample order
        precision: Significant digits per value

    Returns:
        Path to the written file

    Raises:
        OSError: If the file cannot be created
    """
    filepath = Path(filepath)
    simulations = np.asarray(simulations, dtype=np.float64)
    if simulations.ndim != 2:
        raise ValueError(f"Expected (n_samples, n_values) results, got shape {simulations.shape}")

    try:
        f = open(filepath, 'w')
    except OSError as e:
        raise OSError(e.errno, f"Could not open file {filepath}", str(filepath)) from e

    with f:
        if len(simulations) > 0:
            n_values = simulations.shape[1]
            fmt = ' '.join([f'%.{precision}g'] * n_values)
            np.savetxt(f, simulations, fmt=fmt, newline=' \n')

    logger.debug(f"Wrote {len(simulations)} simulations to {filepath}")
    return filepath
