"""
Simulation worker: one thread, one contiguous block of samples.

A worker receives a read-only view of its samples and a writable view
of the matching rows of the batch result array. Views of different
workers never overlap, so no lock is needed on the result array.
"""

import logging
import threading
from typing import Callable, Optional

import numpy as np

from ..exceptions import SimulationError
from ..io.rsr import SpectralResponseSet
from ..variables import AcquisitionGeometry
from .model import SimulationModel
from .noise import NoiseModel
from .partition import Partition

logger = logging.getLogger(__name__)


class SimulationWorker:
    """Runs a private model instance over one partition."""

    def __init__(self,
                 part: Partition,
                 samples: np.ndarray,
                 results: np.ndarray,
                 rsr: SpectralResponseSet,
                 geometry: AcquisitionGeometry,
                 model_factory: Callable[[], SimulationModel],
                 noise: Optional[NoiseModel] = None,
                 seed: Optional[np.random.SeedSequence] = None):
        """
        Args:
            part: Range of the batch handled by this worker
            samples: Samples of that range (view)
            results: Result rows of that range (writable view)
            rsr: Shared spectral responses (read-only)
            geometry: Shared acquisition geometry
            model_factory: Builds the worker's own model
            noise: Band noise, None to disable
            seed: Seed of the worker noise generator (None: OS entropy)
        """
        if len(samples) != len(part) or len(results) != len(part):
            raise ValueError(
                f"Partition {part.index} spans {len(part)} samples but got "
                f"{len(samples)} samples and {len(results)} result rows")
        self.part = part
        self.samples = samples
        self.results = results
        self.rsr = rsr
        self.geometry = geometry
        self.model_factory = model_factory
        self.noise = noise
        self.seed = seed

        self.processed = 0
        self.error: Optional[Exception] = None
        self._thread: Optional[threading.Thread] = None

    def run(self) -> int:
        """
        Simulate every sample of the partition.

        Returns:
            Number of samples processed

        Raises:
            SimulationError: On the first failing sample
        """
        if len(self.part) == 0:
            return 0

        logger.debug(f"Worker {self.part.index}: samples "
                     f"[{self.part.start}, {self.part.stop})")

        model = self.model_factory()
        model.set_rsr(self.rsr)
        model.set_parameters(self.geometry)

        rng = self.noise.generator(self.seed) if self.noise is not None else None
        expected = self.results.shape[1]

        for offset, sample in enumerate(self.samples):
            index = self.part.start + offset
            try:
                model.set_bvs(sample)
                simulation = np.array(model(), dtype=np.float64)
            except Exception as e:
                raise SimulationError(
                    f"Simulation failed for sample {index}: {e}", index) from e

            if simulation.shape != (expected,):
                raise SimulationError(
                    f"Simulation of sample {index} returned {simulation.size} "
                    f"values, expected {expected}", index)

            if rng is not None:
                self.noise.apply(simulation, rng)
            self.results[offset] = simulation

        return len(self.part)

    def _run_in_thread(self):
        try:
            self.processed = self.run()
        except Exception as e:
            self.error = e

    def start(self):
        """Run the partition in a new thread."""
        self._thread = threading.Thread(target=self._run_in_thread,
                                        name=f'prosail-sim-{self.part.index}')
        self._thread.start()

    def join(self):
        """Wait for the worker thread to finish."""
        if self._thread is not None:
            self._thread.join()

    def result(self) -> int:
        """
        Number of samples processed by a finished worker.

        Raises:
            SimulationError: The failure of the worker, if any
        """
        if self.error is not None:
            raise self.error
        return self.processed
