"""Command-line interface for the scanned proton beam dose engine.

Usage:
    pbs-dose peaks --output allPeaks
    pbs-dose weights --peaks allPeaks --output weights
    pbs-dose --config plan.yaml dose --slice 150 --histogram dvh.txt
    pbs-dose info
"""

import argparse
import logging
import sys
from pathlib import Path

from pbs_dose import __version__
from pbs_dose.config import (
    ConfigurationError,
    create_default_config,
    load_plan_config,
    parameter_specs,
)
from pbs_dose.core.exceptions import DoseEngineError
from pbs_dose.io.text_io import read_pairs
from pbs_dose.planner import DosePlanner

logger = logging.getLogger(__name__)


def build_planner(args: argparse.Namespace) -> DosePlanner:
    """Create a planner from the common command-line options."""
    config = load_plan_config(args.config) if args.config else create_default_config()
    if args.verbose:
        config.verbose = True

    energy_loss = read_pairs(args.energy_loss, name="energy_loss") if args.energy_loss else None
    range_energy = read_pairs(args.range_energy, name="range_energy") if args.range_energy else None
    return DosePlanner(config, energy_loss=energy_loss, range_energy=range_energy)


def _peaks(planner: DosePlanner, args: argparse.Namespace) -> None:
    if getattr(args, "peaks", None):
        planner.load_peaks(args.peaks)
    else:
        planner.compute_peaks()


def _weights(planner: DosePlanner, args: argparse.Namespace) -> bool:
    if getattr(args, "weights", None):
        planner.load_weights(args.weights)
        return True
    result = planner.solve_weights()
    return result.success


def cmd_peaks(args: argparse.Namespace) -> int:
    """Calculate the Bragg peaks and save them."""
    planner = build_planner(args)
    peaks = planner.compute_peaks()
    path = planner.save_peaks(args.output)
    logger.info(f"Saved {peaks!r} to {path}")

    if args.plot:
        from pbs_dose.utils.visualization import plot_depth_dose

        cfg = planner.config.peaks
        step = max((cfg.max_range - cfg.min_range) // 5, 1)
        plot_depth_dose(peaks, range(cfg.min_range + step, cfg.max_range, step), save_path=args.plot)
    return 0


def cmd_weights(args: argparse.Namespace) -> int:
    """Solve the SOBP weights and save them."""
    planner = build_planner(args)
    _peaks(planner, args)
    result = planner.solve_weights()
    print(result.message)
    if not result.success:
        return 1

    path = planner.save_weights(args.output)
    logger.info(f"Saved weights to {path}")

    if args.plot:
        from pbs_dose.utils.visualization import plot_sobp

        plot_sobp(result.depth_dose, planner.config.sobp_min, planner.config.sobp_max,
                  save_path=args.plot)
    return 0


def cmd_dose(args: argparse.Namespace) -> int:
    """Calculate the dose distribution and its dose volume histogram."""
    planner = build_planner(args)
    _peaks(planner, args)
    planner.compute_penumbra()

    if args.template:
        planner.define_scan_pattern()
    else:
        if not _weights(planner, args):
            print(planner.solve_result.message)
            return 1
        planner.define_target_pattern()

    planner.calculate_dose()
    dvh = planner.dose_volume_histogram()
    print(f"Max dose in target: {dvh.max_dose:.2f}%  Min dose in target: {dvh.min_dose:.2f}%")

    if args.slice is not None:
        output = args.slice_output or f"dose_z{args.slice}.txt"
        planner.save_dose_slice(output, args.slice)
        logger.info(f"Dose slice written to {output}")
    if args.histogram:
        planner.save_histogram(args.histogram)
        logger.info(f"Dose volume histogram written to {args.histogram}")
    if args.hdf5:
        planner.export_dose(args.hdf5)
        logger.info(f"Dose grid exported to {args.hdf5}")
    if args.plot_dvh:
        from pbs_dose.utils.visualization import plot_dvh

        plot_dvh(dvh, save_path=args.plot_dvh)
    return 0 if dvh.ok else 1


def cmd_info(args: argparse.Namespace) -> int:
    """Display the plan configuration and the parameter ranges."""
    config = load_plan_config(args.config) if args.config else create_default_config()

    print("\n" + "=" * 60)
    print(f"PBS DOSE {__version__}")
    print("=" * 60)

    print("\n[Parameters]")
    for section, params in parameter_specs().items():
        current = getattr(config, section)
        for name, spec in params.items():
            print(
                f"  {section}.{name:<14} {getattr(current, name)!s:>8} {spec.get('units', ''):<4}"
                f" (range {spec['min']}-{spec['max']}, default {spec['default']})"
            )

    print("\n[SOBP]")
    print(f"  Depth window: {config.sobp_min} - {config.sobp_max} mm")

    print("\n" + "=" * 60)
    return 0


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Scanned proton beam dose calculation in a water phantom",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Calculate the Bragg peaks with the built-in water data
  pbs-dose peaks --output allPeaks

  # Solve the SOBP weights from saved peaks
  pbs-dose weights --peaks allPeaks --output weights

  # Full dose calculation with a custom plan
  pbs-dose --config plan.yaml dose --slice 150 --histogram dvh.txt
        """,
    )
    parser.add_argument("--config", type=Path, help="Plan configuration (.yaml or .json)")
    parser.add_argument("--energy-loss", type=Path,
                        help="Energy loss per mm by residual range (default: water)")
    parser.add_argument("--range-energy", type=Path,
                        help="Proton energy by range (default: water)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Report progress")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    peaks_parser = subparsers.add_parser("peaks", help="Calculate and save the Bragg peaks")
    peaks_parser.add_argument("--output", type=Path, default=Path("allPeaks"),
                              help="Output file (default: allPeaks)")
    peaks_parser.add_argument("--plot", type=Path, help="Save a depth-dose plot")

    weights_parser = subparsers.add_parser("weights", help="Solve the SOBP weights")
    weights_parser.add_argument("--peaks", type=Path, help="Load Bragg peaks instead of calculating")
    weights_parser.add_argument("--output", type=Path, default=Path("weights"),
                                help="Output file (default: weights)")
    weights_parser.add_argument("--plot", type=Path, help="Save a plot of the SOBP")

    dose_parser = subparsers.add_parser("dose", help="Calculate the dose distribution")
    dose_parser.add_argument("--peaks", type=Path, help="Load Bragg peaks instead of calculating")
    dose_parser.add_argument("--weights", type=Path, help="Load weights instead of solving")
    dose_parser.add_argument("--template", action="store_true",
                             help="Use the fixed scan template instead of covering the target")
    dose_parser.add_argument("--slice", type=int, help="Write the dose layer at this depth [mm]")
    dose_parser.add_argument("--slice-output", type=Path, help="Dose layer output file")
    dose_parser.add_argument("--histogram", type=Path, help="Write the target DVH")
    dose_parser.add_argument("--hdf5", type=Path, help="Export the dose grid to HDF5")
    dose_parser.add_argument("--plot-dvh", type=Path, help="Save a DVH plot")

    subparsers.add_parser("info", help="Display parameters and their valid ranges")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    commands = {
        "peaks": cmd_peaks,
        "weights": cmd_weights,
        "dose": cmd_dose,
        "info": cmd_info,
    }
    if args.command not in commands:
        parser.print_help()
        return 2

    try:
        return commands[args.command](args)
    except (DoseEngineError, ConfigurationError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
