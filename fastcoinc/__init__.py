# fastcoinc/__init__.py


"""
fastcoinc: cell-based coincidence analysis of continuous-wave pulsar search candidates.

Submodules:
- cli: console entry point (run / combine)
- core: orchestration of ingestion, replication, clustering and reporting
- ingest: candidate file reading, validation and grid origin
- grid: 16-way half-cell grid replication
- clustering: sort-then-scan cell building and per-cell statistics
- reporting: cell views, outlier selection, text products and catalogue tables
- kernels: numba-accelerated primitives (replication, scan, finalisation)
- combine: merging per-run candidate files into one input file
- sky: sexagesimal formatting of cell positions
- plotting: per-frequency sky-maximum diagnostic figure
- errors: exception classes and exit codes
- logger: package logger setup
- types: type definitions for dataclasses
"""

__all__ = [
    "cli",
    "core",
    "ingest",
    "grid",
    "clustering",
    "reporting",
    "kernels",
    "combine",
    "sky",
    "plotting",
    "errors",
    "logger",
    "types"
]

__version__ = "0.1.0"
