"""
Main entry point for labeled prime dataset generation.
"""

import argparse
import logging
import sys

from .core import run_scan
from .errors import ScanError
from .integrity import check_dataset
from .partition import Interval
from .sink import FORMATS, make_sink
from .pool import BACKENDS
from .utils import TimingCollector, default_workers, get_config, get_output_dir, setup_logging


def build_parser():
    parser = argparse.ArgumentParser(
        description='Classify every integer in [start, end) as prime or non-prime and write both '
                    'collections as an ordered dataset.')
    parser.add_argument('-s', '--start', type=int, default=None,
                        help='Start of the range (inclusive)')
    parser.add_argument('-e', '--end', type=int, default=None,
                        help='End of the range (exclusive)')
    parser.add_argument('-w', '--workers', type=int, default=None,
                        help='Number of workers (default: number of physical cores)')
    parser.add_argument('-o', '--output-dir', type=str, default=None,
                        help='Dataset directory (default: $PRIMESET_OUTPUT_DIR, config, or ./data)')
    parser.add_argument('-f', '--format', choices=FORMATS, default=None,
                        help='Dataset format (default: text)')
    parser.add_argument('--backend', choices=BACKENDS, default=None,
                        help='Worker backend (default: process)')
    parser.add_argument('--check', action='store_true',
                        help='Verify the dataset after the scan, or on its own when no range is given')
    parser.add_argument('--sample', type=int, default=1000,
                        help='Labels to re-check per collection with --check (default: 1000)')
    parser.add_argument('--no-progress', action='store_true',
                        help='Disable the progress bar')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging and print a timing summary')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    config = get_config()
    setup_logging(args.verbose, config.get('log_file'))

    start = args.start if args.start is not None else config.get('start')
    end = args.end if args.end is not None else config.get('end')
    fmt = args.format or config.get('format', 'text')
    backend = args.backend or config.get('backend', 'process')
    output_dir = args.output_dir or get_output_dir(config)

    if (start is None) != (end is None):
        parser.error("--start and --end must be given together")
    if start is None and not args.check:
        parser.error("-s/--start and -e/--end are required unless using --check")

    try:
        interval = Interval(start, end) if start is not None else None

        if interval is not None:
            if args.workers is not None:
                workers = args.workers
                print(f"Using {workers} workers (user-specified)")
            elif 'workers' in config:
                workers = config['workers']
                print(f"Using {workers} workers (config)")
            else:
                workers = default_workers()
                print(f"Using {workers} workers (physical cores)")

            timer = TimingCollector(verbose=args.verbose)
            sink = make_sink(fmt, output_dir)
            summary = run_scan(
                start, end, workers, sink,
                backend=backend,
                start_method=config.get('start_method', 'spawn'),
                progress=not args.no_progress,
                timer=timer,
            )
            summary.print()
            print(f"Dataset written to {output_dir}")
            if args.verbose:
                timer.print_summary()

        if args.check:
            report = check_dataset(output_dir, fmt, interval=interval, sample=args.sample)
            print(report.format())
            if not report.ok:
                return 1
    except ScanError as e:
        logging.error(f"{e.kind}: {e}")
        return e.exit_code

    return 0


if __name__ == "__main__":
    sys.exit(main())
