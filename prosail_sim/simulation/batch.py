"""
Batch simulation of biophysical variable samples.

Pipeline:
    1. Load the sensor spectral responses (number of bands)
    2. Resolve the acquisition geometry (explicit angles, or product metadata)
    3. Validate the band noise, if any
    4. Parse the BV sample file
    5. Partition the samples and allocate the result array
    6. Run one worker thread per partition and wait for all of them
    7. Write the results in sample order

The output file is only opened at step 7: a run that fails before that
leaves no output behind.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

import numpy as np

from ..io.metadata import MetadataHelper
from ..io.rsr import SpectralResponseSet
from ..io.samples import parse_bv_sample_file
from ..io.simulations import write_simulations, DEFAULT_PRECISION
from ..variables import AcquisitionGeometry
from .model import SimulationModel, N_DERIVED
from .noise import NoiseModel
from .partition import partition, resolve_thread_count
from .worker import SimulationWorker

logger = logging.getLogger(__name__)


@dataclass
class SimulationParameters:
    """Everything needed to run one batch."""
    bv_file: Union[str, Path]
    rsr_file: Union[str, Path]
    out_file: Union[str, Path]

    # Geometry (degrees)
    solar_zenith: float
    sensor_zenith: float
    azimuth: float
    solar_zenith_fapar: Optional[float] = None
    xml_file: Optional[Union[str, Path]] = None

    # Noise: one value for all bands, or one per band
    noise_var: Optional[Sequence[Union[str, float]]] = None
    seed: Optional[int] = None

    threads: Optional[int] = None
    precision: int = DEFAULT_PRECISION


def resolve_geometry(geometry: AcquisitionGeometry,
                     xml_file: Optional[Union[str, Path]] = None) -> AcquisitionGeometry:
    """
    Override the explicit angles with those of a product metadata file.

    The first band's viewing angles are used when per-band angles exist,
    otherwise the global ones. Without usable angles a warning is logged
    and the explicit geometry is kept. The fAPAR solar zenith is never
    taken from metadata.

    Raises:
        OSError: If the metadata file cannot be read
    """
    if xml_file is None:
        return geometry

    helper = MetadataHelper(xml_file)

    if helper.has_band_mean_angles():
        sensor = helper.get_sensor_mean_angles(0)
    elif helper.has_global_mean_angles():
        sensor = helper.get_sensor_mean_angles()
    else:
        logger.warning(f"There are no angles for this mission? {helper.mission_name}")
        return geometry

    solar = helper.get_solar_mean_angles()
    rel_azimuth = helper.get_relative_azimuth_angle()
    if solar is None or rel_azimuth is None:
        logger.warning(f"No solar angles in {Path(xml_file).name}, "
                       f"using the explicit geometry")
        return geometry

    resolved = geometry.with_angles(solar.zenith, sensor.zenith, rel_azimuth)
    logger.info(f"Angles from {Path(xml_file).name}: solar zenith {resolved.solar_zenith:.3f}, "
                f"sensor zenith {resolved.sensor_zenith:.3f}, "
                f"relative azimuth {resolved.relative_azimuth:.3f}")
    return resolved


def simulate_batch(samples: np.ndarray,
                   rsr: SpectralResponseSet,
                   geometry: AcquisitionGeometry,
                   model_factory: Callable[[], SimulationModel],
                   noise: Optional[NoiseModel] = None,
                   n_threads: int = 1,
                   seed: Optional[int] = None) -> np.ndarray:
    """
    Simulate every sample with n_threads worker threads.

    Args:
        samples: BV samples (n_samples, N_BV)
        rsr: Sensor spectral responses
        geometry: Acquisition geometry
        model_factory: Builds one model per worker
        noise: Band noise, None to disable
        n_threads: Number of workers
        seed: Noise seed (None: OS entropy)

    Returns:
        Results (n_samples, n_bands + 2), row i simulated from sample i

    Raises:
        SimulationError: If any sample fails; no result is returned
    """
    n_samples = len(samples)
    results = np.full((n_samples, rsr.n_bands + N_DERIVED), np.nan)

    parts = partition(n_samples, n_threads)
    seeds = NoiseModel.worker_seeds(seed, len(parts))
    workers = [
        SimulationWorker(part, samples[part.slice], results[part.slice],
                         rsr, geometry, model_factory, noise, seeds[part.index])
        for part in parts
    ]

    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    # First failure in partition order, once every worker has stopped
    processed = sum(worker.result() for worker in workers)
    logger.info(f"{processed} samples processed.")
    return results


class BatchSimulator:
    """Runs a full simulation batch from files to files."""

    def __init__(self,
                 params: SimulationParameters,
                 model_factory: Optional[Callable[[], SimulationModel]] = None):
        """
        Args:
            params: Batch parameters
            model_factory: Builds one model per worker (default: PROSAIL)
        """
        self.params = params
        if model_factory is None:
            from .prosail_model import ProSailSimulator
            model_factory = ProSailSimulator
        self.model_factory = model_factory

        self.rsr: Optional[SpectralResponseSet] = None
        self.geometry: Optional[AcquisitionGeometry] = None
        self.noise: Optional[NoiseModel] = None
        self.n_threads: Optional[int] = None

    def configure(self):
        """Steps 1-3: everything that can fail before the samples are read."""
        p = self.params

        self.rsr = SpectralResponseSet.load(p.rsr_file)
        logger.info(f"Simulating {self.rsr.n_bands} spectral bands.")
        logger.info(self.rsr.describe())

        explicit = AcquisitionGeometry(
            solar_zenith=p.solar_zenith,
            sensor_zenith=p.sensor_zenith,
            relative_azimuth=p.azimuth,
            solar_zenith_fapar=p.solar_zenith_fapar,
        )
        self.geometry = resolve_geometry(explicit, p.xml_file)

        # Model configuration errors surface here, before any worker starts
        probe = self.model_factory()
        probe.set_rsr(self.rsr)
        probe.set_parameters(self.geometry)

        self.noise = None
        if p.noise_var is not None and len(p.noise_var) > 0:
            self.noise = NoiseModel.from_spec(p.noise_var, self.rsr.n_bands)

        self.n_threads = resolve_thread_count(p.threads)

    def run(self) -> np.ndarray:
        """
        Run the batch and write the output file.

        Returns:
            Results (n_samples, n_bands + 2)

        Raises:
            ConfigurationError: Invalid bands, noise or thread count
            OSError: Unreadable input or uncreatable output
            SimulationError: Model failure on any sample
        """
        self.configure()

        logger.info("Processing simulations ...")
        samples = parse_bv_sample_file(self.params.bv_file)
        logger.info(f"{len(samples)} samples read.")
        logger.info(f"Using {self.n_threads} threads for the simulations.")

        results = simulate_batch(samples, self.rsr, self.geometry,
                                 self.model_factory, self.noise,
                                 self.n_threads, self.params.seed)

        write_simulations(self.params.out_file, results, self.params.precision)
        logger.info(f"Results saved in {self.params.out_file}")
        return results
