"""
Workload partitioning across simulation threads.

N ordered samples are cut into T contiguous blocks of N // T samples;
the last block also takes the N % T remaining samples. When there are
at least as many threads as samples, the first block takes everything
and the other threads get empty ranges.

    N = 10, T = 3  ->  [0, 3) [3, 6) [6, 10)
    N = 2,  T = 4  ->  [0, 2) [2, 2) [2, 2) [2, 2)

The blocks always cover [0, N) exactly once, so every result slot is
owned by exactly one worker.
"""

import os
import logging
from dataclasses import dataclass
from typing import List, Optional

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Partition:
    """Half-open sample range [start, stop) handled by one worker."""
    index: int
    start: int
    stop: int

    def __len__(self) -> int:
        return self.stop - self.start

    @property
    def slice(self) -> slice:
        return slice(self.start, self.stop)


def available_threads() -> int:
    """Hardware concurrency hint."""
    return os.cpu_count() or 1


def resolve_thread_count(requested: Optional[int] = None,
                         available: Optional[int] = None) -> int:
    """
    Number of worker threads for a batch.

    Args:
        requested: User requested thread count (None: use all)
        available: Hardware concurrency (None: detect)

    Returns:
        min(available, requested), or available without a request

    Raises:
        ConfigurationError: If the request is below 1
    """
    if available is None:
        available = available_threads()
    available = max(1, int(available))

    if requested is None:
        return available
    if requested < 1:
        raise ConfigurationError(f"Number of threads must be at least 1, got {requested}")
    return min(available, int(requested))


def partition(n_samples: int, n_threads: int) -> List[Partition]:
    """
    Split [0, n_samples) into n_threads contiguous ranges.

    Args:
        n_samples: Number of samples N (>= 0)
        n_threads: Number of workers T (>= 1)

    Returns:
        Exactly T partitions, in sample order
    """
    if n_threads < 1:
        raise ValueError(f"n_threads must be >= 1, got {n_threads}")
    if n_samples < 0:
        raise ValueError(f"n_samples must be >= 0, got {n_samples}")

    block_size = n_samples // n_threads
    if n_threads >= n_samples:
        block_size = n_samples

    parts = []
    start = 0
    for t in range(n_threads):
        stop = min(start + block_size, n_samples)
        if t == n_threads - 1:
            stop = n_samples  # remainder
        parts.append(Partition(t, start, stop))
        start = stop

    logger.debug(f"Partitioned {n_samples} samples: "
                 f"{[(p.start, p.stop) for p in parts]}")
    return parts
