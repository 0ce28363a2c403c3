"""
===============================================================================
AIRBRAKE GNC - Main Entry Point
===============================================================================
Runs a single simulated flight with the apogee predictor and bang-bang
airbrake controller in the loop, then prints a flight summary.

Usage:
    airbrake-gnc                                   Defaults
    airbrake-gnc --config config/airbrake_config.yaml
    airbrake-gnc --target 2500 --plot output/plots --telemetry output/flight.csv
===============================================================================
"""

import argparse
import logging
import os
import sys
from datetime import datetime

from airbrake_gnc.config import load_config
from airbrake_gnc.simulation.sim_engine import CoastSimulation

logger = logging.getLogger('AIRBRAKE_MAIN')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Airbrake apogee control simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  airbrake-gnc --config config/airbrake_config.yaml
  airbrake-gnc --target 2500 --plot output/plots
        """
    )
    parser.add_argument('--config', type=str, default=None,
                        help='Path to airbrake config YAML')
    parser.add_argument('--target', type=float, default=None,
                        help='Override the target apogee (m)')
    parser.add_argument('--plot', type=str, default=None, metavar='DIR',
                        help='Write flight plots into DIR')
    parser.add_argument('--telemetry', type=str, default=None, metavar='CSV',
                        help='Save per-step telemetry to CSV')
    parser.add_argument('--verbose', action='store_true',
                        help='Debug logging')
    return parser


def main(argv=None) -> int:
    """
    Parse arguments, run one flight and report.

    Returns the process exit code.
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    print("=" * 70)
    print("  AIRBRAKE APOGEE CONTROL SIMULATION")
    print(f"  Start time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70)

    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        logger.error("Cannot load configuration: %s", exc)
        return 2
    if args.target is not None:
        config.controller.target_apogee_m = args.target
        logger.info("Target apogee overridden: %.1f m", args.target)

    try:
        sim = CoastSimulation(config)
    except (OSError, ValueError) as exc:
        logger.error("Cannot load airbrake drag surface: %s", exc)
        return 2

    telemetry = sim.run()
    summary = sim.summary()

    if args.telemetry:
        out_dir = os.path.dirname(args.telemetry)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        sim.save_telemetry(args.telemetry)

    if args.plot:
        from airbrake_gnc.visualization.flight_plots import generate_flight_plots
        generate_flight_plots(telemetry, config.controller.target_apogee_m,
                              config.vehicle.max_mach_for_deployment, args.plot)

    print("\n" + "=" * 70)
    print(f"  Apogee:  {summary.get('apogee_m', float('nan')):.1f} m")
    print(f"  Target:  {summary['target_apogee_m']:.1f} m")
    print(f"  Error:   {summary.get('apogee_error_m', float('nan')):+.1f} m")
    print(f"  Airbrake commands: {summary.get('commands', 0)}")
    print("=" * 70)
    return 0


if __name__ == '__main__':
    sys.exit(main())
