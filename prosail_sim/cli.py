"""
Command-line interface for prosail-sim.

Usage:
    prosail-simulate --bvfile samples.txt --rsrfile s2a.rsr --out simus.txt \\
        --solarzenith 30 --sensorzenith 10 --azimuth 0
    prosail-config --show
"""

import sys
import logging
import argparse
import functools
from pathlib import Path

from prosail_sim.exceptions import ConfigurationError, SimulationError


def simulate_cli(argv=None):
    """Batch simulation CLI."""
    parser = argparse.ArgumentParser(
        prog='prosail-simulate',
        description='Simulate reflectances, fcover and fapar using Prospect+Sail.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
The output file holds one line per sample: the simulated band
reflectances followed by fcover and fapar.

Examples:
  prosail-simulate --bvfile bv.txt --rsrfile s2a.rsr --out simus.txt \\
      --solarzenith 30 --sensorzenith 10 --azimuth 0
  prosail-simulate ... --xml MTD_TL.xml --noisevar 0.01 --threads 4 --seed 7
        """
    )

    parser.add_argument('--bvfile', required=True,
                        help='Input file containing the biophysical variable samples')
    parser.add_argument('--rsrfile', required=True,
                        help='Input file containing the relative spectral responses')
    parser.add_argument('--out', required=True,
                        help='Output file; the last 2 values of each line are fcover and fapar')

    parser.add_argument('--solarzenith', type=float, required=True,
                        help='Solar zenith angle (degrees)')
    parser.add_argument('--solarzenithf', type=float, default=None,
                        help='Solar zenith for the fAPAR simulation (default: --solarzenith)')
    parser.add_argument('--sensorzenith', type=float, required=True,
                        help='Sensor zenith angle (degrees)')
    parser.add_argument('--azimuth', type=float, required=True,
                        help='Relative azimuth angle (degrees)')
    parser.add_argument('--xml', default=None,
                        help='Product metadata XML; its angles replace the ones above')

    parser.add_argument('--noisevar', nargs='+', default=None,
                        help='Noise to be added per band (one value for all bands, or one per band)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Noise seed for reproducible runs')
    parser.add_argument('--threads', '-t', type=int, default=None,
                        help='Number of parallel threads for the simulation')
    parser.add_argument('--precision', type=int, default=None,
                        help='Significant digits in the output file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )

    logger = logging.getLogger(__name__)

    from prosail_sim.utils.config import get_config
    from prosail_sim.simulation.batch import BatchSimulator, SimulationParameters

    config = get_config()

    params = SimulationParameters(
        bv_file=args.bvfile,
        rsr_file=args.rsrfile,
        out_file=args.out,
        solar_zenith=args.solarzenith,
        sensor_zenith=args.sensorzenith,
        azimuth=args.azimuth,
        solar_zenith_fapar=args.solarzenithf,
        xml_file=args.xml,
        noise_var=args.noisevar,
        seed=args.seed if args.seed is not None else config.noise_seed,
        threads=args.threads if args.threads is not None else config.n_threads,
        precision=args.precision if args.precision is not None else config.precision,
    )

    from prosail_sim.simulation.prosail_model import ProSailSimulator
    model_factory = functools.partial(
        ProSailSimulator,
        prospect_version=config.prospect_version,
        psoil=config.psoil
    )

    try:
        BatchSimulator(params, model_factory).run()
    except (ConfigurationError, SimulationError, OSError) as e:
        logger.error(str(e))
        sys.exit(1)


def config_cli(argv=None):
    """Configuration management CLI."""
    parser = argparse.ArgumentParser(
        prog='prosail-config',
        description='prosail-sim Configuration',
    )

    parser.add_argument('--show', action='store_true',
                        help='Show current configuration')
    parser.add_argument('--init', action='store_true',
                        help='Create config file template')

    args = parser.parse_args(argv)

    from prosail_sim.utils.config import get_config, CONFIG_PATHS

    config = get_config()

    if args.show:
        import yaml
        print(yaml.dump(config._config, default_flow_style=False))

    elif args.init:
        config_path = CONFIG_PATHS[0]
        if config_path.exists():
            print(f"Config already exists: {config_path}")
        else:
            config.save(config_path)
            print(f"Created config: {config_path}")

    else:
        parser.print_help()


def main():
    """Main entry point - dispatch to appropriate CLI."""
    if len(sys.argv) < 2:
        print("prosail-sim")
        print()
        print("Commands:")
        print("  prosail-simulate  - Batch PROSAIL simulation")
        print("  prosail-config    - Configuration management")
        print()
        print("Use --help with any command for details.")
        sys.exit(0)

    # Simple dispatch based on script name
    script_name = Path(sys.argv[0]).stem
    if 'config' in script_name:
        config_cli()
    else:
        simulate_cli()


if __name__ == '__main__':
    main()
