# -*- coding: utf-8 -*-
"""
fastcoinc CLI dispatcher.

Provides:
  fastcoinc [run] ...   -> cell coincidence analysis of candidate files
  fastcoinc combine ... -> merge per-run candidate files into one input file
"""

import argparse
import logging
import sys

from fastcoinc.errors import CoincidenceError, EXIT_OK, EXIT_OUTFAIL
from fastcoinc.logger import setup_logger
from fastcoinc.types import Config

log = logging.getLogger("fastcoinc.cli")


def build_run_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fastcoinc",
        description="Count coincidences of pulsar-search candidates in cells of "
                    "(frequency, sky position, spin-down)")
    parser.add_argument('-o', '--output', required=True, help='Output file for the info of every cell')
    src = parser.add_mutually_exclusive_group()
    src.add_argument('-I', '--input-data', nargs='+', default=[],
                     help='Input candidate file(s)')
    src.add_argument('-i', '--input-dir', default=None,
                     help='Directory of input candidate files')
    parser.add_argument('-b', '--basename', default='Test',
                        help='Base name of the input files in --input-dir (default: Test)')
    parser.add_argument('-f', '--freq-window', type=float, required=True, help='Frequency window in Hz')
    parser.add_argument('-s', '--f1dot-window', type=float, required=True, help='Spin-down window in Hz/s')
    parser.add_argument('-a', '--alpha-window', type=float, required=True,
                        help='Right ascension window in radians (at the equator)')
    parser.add_argument('-d', '--delta-window', type=float, required=True,
                        help='Declination window in radians (at the equator)')
    parser.add_argument('-k', '--kappa', type=float, default=4.3,
                        help='Tuning parameter for the declination window (default: 4.3)')
    parser.add_argument('-F', '--freq-shift', type=float, default=0.0, help='Frequency grid shift in cell widths')
    parser.add_argument('-S', '--f1dot-shift', '--spin-shift', type=float, default=0.0, help='Spin-down grid shift in cell widths')
    parser.add_argument('-A', '--alpha-shift', '--ra-shift', type=float, default=0.0,
                        help='Right ascension grid shift in cell widths')
    parser.add_argument('-D', '--delta-shift', '--dec-shift', type=float, default=0.0,
                        help='Declination grid shift in cell widths')
    parser.add_argument('--threshold', type=float, default=0.0,
                        help='Threshold on the detection statistic (2F) of candidates (default: 0)')
    parser.add_argument('--count-threshold', type=int, default=65536,
                        help='Threshold on the number of coincidences (default: 65536)')
    parser.add_argument('--sig-threshold', type=float, default=1.0e5,
                        help='Threshold on significance (default: 1e5)')
    parser.add_argument('--auto', action='store_true',
                        help='Ignore both thresholds; output the most coincident and the most significant cell')
    parser.add_argument('--aux-dir', default=None,
                        help='Directory for the outlier files (default: directory of --output)')
    parser.add_argument('--max-candidates', type=int, default=8_000_000,
                        help='Abort when more candidates than this are read (default: 8000000)')
    parser.add_argument('--table-prefix', default=None,
                        help='Also save the cell catalogue as <prefix>_cells.csv/.vot')
    parser.add_argument('--plot', default=None, help='Save a PNG of the sky maximum per frequency cell')
    parser.add_argument('--progress', action='store_true', help='Show a progress bar while reading files')
    parser.add_argument('--log-level', default='INFO')
    parser.add_argument('--log-file', default=None)
    return parser


def config_from_args(args: argparse.Namespace) -> Config:
    return Config(
        output_file=args.output,
        input_files=list(args.input_data),
        input_dir=args.input_dir,
        basename=args.basename,
        delta_freq=args.freq_window,
        delta_spin=args.f1dot_window,
        delta_ra=args.alpha_window,
        delta_dec=args.delta_window,
        kappa=args.kappa,
        shift_freq=args.freq_shift,
        shift_spin=args.f1dot_shift,
        shift_ra=args.alpha_shift,
        shift_dec=args.delta_shift,
        stat_threshold=args.threshold,
        count_threshold=args.count_threshold,
        sig_threshold=args.sig_threshold,
        auto=args.auto,
        aux_dir=args.aux_dir,
        max_candidates=args.max_candidates,
        table_prefix=args.table_prefix,
        plot_path=args.plot,
    )


def _run_search(argv):
    """
    Parse run args and execute core.run_coincidence().
    """
    from fastcoinc import core

    args = build_run_parser().parse_args(list(argv))
    setup_logger(level=args.log_level, file=args.log_file)
    try:
        cfg = config_from_args(args).validate()
        core.run_coincidence(cfg, progress=args.progress)
    except CoincidenceError as e:
        log.error("%s", e)
        return e.exit_code
    except OSError as e:
        log.error("Cannot write output: %s", e)
        return EXIT_OUTFAIL
    return EXIT_OK


def _run_combine(argv):
    """
    Parse combine args and run combine.combine_candidate_files().
    """
    from fastcoinc import combine

    parser = argparse.ArgumentParser(prog="fastcoinc combine",
                                     description="Merge per-run candidate files into one input file")
    parser.add_argument('files', nargs='+', help='Per-run candidate files; file id = position')
    parser.add_argument('-o', '--output', required=True, help='Combined output file')
    parser.add_argument('--progress', action='store_true')
    parser.add_argument('--log-level', default='INFO')
    args = parser.parse_args(list(argv))
    setup_logger(level=args.log_level)
    try:
        combine.combine_candidate_files(args.files, args.output, progress=args.progress)
    except CoincidenceError as e:
        log.error("%s", e)
        return e.exit_code
    except OSError as e:
        log.error("Cannot write output: %s", e)
        return EXIT_OUTFAIL
    return EXIT_OK


def main(argv=None):
    """
    Entry point for the console script "fastcoinc".

    If first argument is "combine", merge run files.
    Otherwise ("run" or no sub-command) run the coincidence analysis.
    """
    if argv is None:
        argv = sys.argv[1:]

    if len(argv) > 0 and argv[0] == "combine":
        return _run_combine(argv[1:])
    elif len(argv) > 0 and argv[0] == "run":
        return _run_search(argv[1:])

    return _run_search(argv)


if __name__ == "__main__":
    raise SystemExit(main())
