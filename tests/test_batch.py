"""
Tests for batch simulation: ordering, threading, noise and failures.

The batch engine is exercised with a deterministic linear model so that
every output value is known.

Run with: pytest tests/test_batch.py -v
"""

import threading

import numpy as np
import pytest

from prosail_sim.exceptions import ConfigurationError, SimulationError
from prosail_sim.io.rsr import SpectralResponseSet
from prosail_sim.simulation.batch import BatchSimulator, SimulationParameters, simulate_batch
from prosail_sim.simulation.noise import NoiseModel
from prosail_sim.variables import AcquisitionGeometry

from conftest import expected_simulation, make_samples, write_bv_file


GEOMETRY = AcquisitionGeometry(solar_zenith=30.0, sensor_zenith=10.0, relative_azimuth=0.0)


def make_params(tmp_path, bv_file, rsr_file, **kwargs):
    defaults = dict(
        bv_file=bv_file,
        rsr_file=rsr_file,
        out_file=tmp_path / "simus.txt",
        solar_zenith=30.0,
        sensor_zenith=10.0,
        azimuth=0.0,
    )
    defaults.update(kwargs)
    return SimulationParameters(**defaults)


class TestBatchOutput:
    """Test the end-to-end batch on files."""

    def test_two_samples_three_bands(self, tmp_path, bv_file, rsr_file, linear_model):
        """3 bands, 2 samples: 2 lines of 5 values."""
        params = make_params(tmp_path, bv_file, rsr_file, threads=2)
        results = BatchSimulator(params, linear_model).run()

        lines = params.out_file.read_text().splitlines(keepends=True)
        assert len(lines) == 2
        for line in lines:
            assert line.endswith(" \n")
            assert len(line.split()) == 5

        samples = make_samples(2)
        for i, line in enumerate(lines):
            values = np.array([float(v) for v in line.split()])
            expected = expected_simulation(samples[i], 3, 30.0)
            np.testing.assert_allclose(values, expected, rtol=1e-5)
            np.testing.assert_allclose(results[i], expected)

    def test_empty_sample_file(self, tmp_path, rsr_file, linear_model):
        """No samples: empty output file and no error."""
        bv_file = write_bv_file(tmp_path / "empty.txt", make_samples(0))
        params = make_params(tmp_path, bv_file, rsr_file, threads=4)

        results = BatchSimulator(params, linear_model).run()

        assert results.shape == (0, 5)
        assert params.out_file.exists()
        assert params.out_file.read_text() == ""

    def test_rerun_is_byte_identical(self, tmp_path, rsr_file, linear_model):
        bv_file = write_bv_file(tmp_path / "bv.txt", make_samples(23))
        first = make_params(tmp_path, bv_file, rsr_file, out_file=tmp_path / "a.txt", threads=3)
        second = make_params(tmp_path, bv_file, rsr_file, out_file=tmp_path / "b.txt", threads=3)

        BatchSimulator(first, linear_model).run()
        BatchSimulator(second, linear_model).run()

        assert first.out_file.read_bytes() == second.out_file.read_bytes()

    def test_output_independent_of_thread_count(self, tmp_path, rsr_file, linear_model):
        bv_file = write_bv_file(tmp_path / "bv.txt", make_samples(17))
        outputs = []
        for threads in (1, 2, 5, 64):
            params = make_params(tmp_path, bv_file, rsr_file,
                                 out_file=tmp_path / f"t{threads}.txt", threads=threads)
            BatchSimulator(params, linear_model).run()
            outputs.append(params.out_file.read_bytes())
        assert all(out == outputs[0] for out in outputs)

    def test_precision(self, tmp_path, bv_file, rsr_file, linear_model):
        params = make_params(tmp_path, bv_file, rsr_file, precision=3)
        BatchSimulator(params, linear_model).run()
        first_value = params.out_file.read_text().split()[0]
        # sample 0: MLAI = 0, band 0 = 30 / 100
        assert first_value == "0.3"

    def test_metadata_angles_used(self, tmp_path, bv_file, rsr_file, linear_model):
        xml = tmp_path / "MTD_TL.xml"
        xml.write_text(
            "<Tile><Mean_Sun_Angle><ZENITH_ANGLE>50</ZENITH_ANGLE>"
            "<AZIMUTH_ANGLE>150</AZIMUTH_ANGLE></Mean_Sun_Angle>"
            "<Mean_Viewing_Incidence_Angle bandId='0'><ZENITH_ANGLE>3</ZENITH_ANGLE>"
            "<AZIMUTH_ANGLE>100</AZIMUTH_ANGLE></Mean_Viewing_Incidence_Angle></Tile>")
        params = make_params(tmp_path, bv_file, rsr_file, xml_file=xml)

        simulator = BatchSimulator(params, linear_model)
        results = simulator.run()

        assert simulator.geometry.solar_zenith == 50.0
        assert simulator.geometry.sensor_zenith == 3.0
        assert results[0, 0] == pytest.approx(0.5)

    def test_noise_given_as_array(self, tmp_path, bv_file, rsr_file, linear_model):
        params = make_params(tmp_path, bv_file, rsr_file, noise_var=np.array([0.01]), seed=3)
        simulator = BatchSimulator(params, linear_model)
        simulator.run()
        np.testing.assert_array_equal(simulator.noise.scales, [0.01, 0.01, 0.01])

    def test_empty_noise_disables_noise(self, tmp_path, bv_file, rsr_file, linear_model):
        params = make_params(tmp_path, bv_file, rsr_file, noise_var=np.array([]))
        simulator = BatchSimulator(params, linear_model)
        simulator.run()
        assert simulator.noise is None


class TestBatchErrors:
    """Test fatal errors and their side effects."""

    def test_noise_count_mismatch(self, tmp_path, bv_file, rsr_file, linear_model):
        """Two noise values for three bands fail before any simulation."""
        params = make_params(tmp_path, bv_file, rsr_file, noise_var=["0.01", "0.02"])

        with pytest.raises(ConfigurationError):
            BatchSimulator(params, linear_model).run()

        # Only the configuration probe was built, no worker model
        assert len(linear_model.created) <= 1
        assert not params.out_file.exists()

    def test_unreadable_sample_file(self, tmp_path, rsr_file, linear_model):
        params = make_params(tmp_path, tmp_path / "missing_bv.txt", rsr_file)

        with pytest.raises(OSError):
            BatchSimulator(params, linear_model).run()
        assert not params.out_file.exists()

    def test_unwritable_output(self, tmp_path, bv_file, rsr_file, linear_model):
        params = make_params(tmp_path, bv_file, rsr_file,
                             out_file=tmp_path / "no_such_dir" / "simus.txt")
        with pytest.raises(OSError):
            BatchSimulator(params, linear_model).run()

    def test_invalid_thread_request(self, tmp_path, bv_file, rsr_file, linear_model):
        params = make_params(tmp_path, bv_file, rsr_file, threads=0)
        with pytest.raises(ConfigurationError):
            BatchSimulator(params, linear_model).run()

    def test_model_failure_aborts_batch(self, tmp_path, rsr_file, failing_model):
        """A failing sample aborts the run and writes nothing."""
        samples = make_samples(12)
        samples[7, 0] = -1.0
        bv_file = write_bv_file(tmp_path / "bv.txt", samples)
        params = make_params(tmp_path, bv_file, rsr_file, threads=3)

        with pytest.raises(SimulationError) as excinfo:
            BatchSimulator(params, failing_model).run()

        assert excinfo.value.sample_index == 7
        assert "sample 7" in str(excinfo.value)
        assert isinstance(excinfo.value.__cause__, ArithmeticError)
        assert not params.out_file.exists()


class TestSimulateBatch:
    """Test the in-memory threaded simulation."""

    @pytest.fixture
    def rsr(self, rsr_file):
        return SpectralResponseSet.load(rsr_file)

    @pytest.mark.parametrize("n_threads", [1, 2, 3, 8])
    def test_rows_match_samples(self, rsr, linear_model, n_threads):
        """Result row i comes from sample i whatever the thread count."""
        samples = make_samples(37)
        results = simulate_batch(samples, rsr, GEOMETRY, linear_model, n_threads=n_threads)

        assert results.shape == (37, 5)
        for i, sample in enumerate(samples):
            np.testing.assert_allclose(results[i], expected_simulation(sample, 3, 30.0))

    def test_one_model_per_worker(self, rsr, linear_model):
        """Every non-empty partition builds its own model."""
        simulate_batch(make_samples(20), rsr, GEOMETRY, linear_model, n_threads=4)
        assert len(linear_model.created) == 4

    def test_one_thread_per_partition(self, rsr, linear_model):
        """Each partition runs on its own thread, never a reused one."""
        simulate_batch(make_samples(8), rsr, GEOMETRY, linear_model, n_threads=8)
        threads = linear_model.created
        assert len(threads) == 8
        assert len(set(threads)) == 8
        assert threading.current_thread() not in threads

    def test_more_threads_than_samples(self, rsr, linear_model):
        samples = make_samples(3)
        many = simulate_batch(samples, rsr, GEOMETRY, linear_model, n_threads=8)
        single = simulate_batch(samples, rsr, GEOMETRY, linear_model, n_threads=1)
        np.testing.assert_array_equal(many, single)

    def test_single_sample(self, rsr, linear_model):
        samples = make_samples(1)
        results = simulate_batch(samples, rsr, GEOMETRY, linear_model, n_threads=4)
        np.testing.assert_allclose(results[0], expected_simulation(samples[0], 3, 30.0))

    def test_seeded_noise_reproducible(self, rsr, linear_model):
        noise = NoiseModel.from_spec(["0.01"], 3)
        samples = make_samples(30)

        a = simulate_batch(samples, rsr, GEOMETRY, linear_model, noise, n_threads=3, seed=5)
        b = simulate_batch(samples, rsr, GEOMETRY, linear_model, noise, n_threads=3, seed=5)
        clean = simulate_batch(samples, rsr, GEOMETRY, linear_model, n_threads=3)

        np.testing.assert_array_equal(a, b)
        assert not np.allclose(a[:, :3], clean[:, :3])
        # fcover and fapar are never perturbed
        np.testing.assert_array_equal(a[:, 3:], clean[:, 3:])

    def test_unseeded_noise_differs(self, rsr, linear_model):
        noise = NoiseModel.from_spec(["0.01"], 3)
        samples = make_samples(10)
        a = simulate_batch(samples, rsr, GEOMETRY, linear_model, noise, n_threads=2)
        b = simulate_batch(samples, rsr, GEOMETRY, linear_model, noise, n_threads=2)
        assert not np.allclose(a[:, :3], b[:, :3])
