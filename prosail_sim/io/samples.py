"""
Biophysical variable sample files.

Format:
    - First line is a header with the variable names; it is skipped,
      values are read by position in BVNames order.
    - Every following line holds whitespace separated decimal values.

Example:
    MLAI ALA CrownCover HsD N Cab Car Cdm CwRel Cbp Bs
    2.1 60.0 0.95 0.2 1.5 45.0 8.0 0.005 0.75 0.1 1.0
    ...
"""

import logging
from pathlib import Path
from typing import TextIO, Union

import numpy as np

from ..variables import N_BV

logger = logging.getLogger(__name__)


def _parse_line(line: str, line_no: int) -> np.ndarray:
    """Read the first N_BV numbers of a line; missing fields stay NaN."""
    sample = np.full(N_BV, np.nan)
    tokens = line.split()
    for i, token in enumerate(tokens[:N_BV]):
        try:
            sample[i] = float(token)
        except ValueError:
            logger.warning(f"Line {line_no}: cannot parse '{token}', "
                           f"fields {i}-{N_BV - 1} left undefined")
            return sample
    if len(tokens) < N_BV:
        logger.warning(f"Line {line_no}: {len(tokens)} values for {N_BV} variables")
    return sample


def read_samples(stream: TextIO) -> np.ndarray:
    """
    Read all samples from an open text stream.

    Args:
        stream: Text stream positioned at the header line

    Returns:
        Read-only array (n_samples, N_BV), rows in file order
    """
    stream.readline()  # variable names

    rows = []
    for line_no, line in enumerate(stream, start=2):
        if not line.strip():
            continue
        rows.append(_parse_line(line, line_no))

    samples = np.array(rows, dtype=np.float64).reshape(len(rows), N_BV)
    samples.flags.writeable = False
    return samples


def parse_bv_sample_file(source: Union[str, Path, TextIO]) -> np.ndarray:
    """
    Parse a BV sample file.

    Args:
        source: Path to the sample file, or an already open text stream

    Returns:
        Read-only array (n_samples, N_BV)

    Raises:
        OSError: If the file cannot be opened
    """
    if hasattr(source, 'readline'):
        return read_samples(source)

    path = Path(source)
    try:
        f = open(path, 'r')
    except OSError as e:
        raise OSError(e.errno, f"Could not open file {path}", str(path)) from e

    with f:
        samples = read_samples(f)
    logger.debug(f"Parsed {len(samples)} samples from {path.name}")
    return samples
