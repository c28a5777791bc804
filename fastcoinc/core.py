import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from astropy.table import Table

from fastcoinc import clustering, grid, ingest, reporting
from fastcoinc.types import CandidateList, CellData, Config, GridOrigin, ReplicaList

log = logging.getLogger("fastcoinc.core")


@dataclass
class CoincidenceResult:
    cells: CellData
    replicas: ReplicaList
    origin: GridOrigin
    report: reporting.Report
    table: Optional[Table] = None


def input_paths(cfg: Config) -> List[str]:
    if cfg.input_files:
        return list(cfg.input_files)
    return ingest.discover_candidate_files(cfg.input_dir, cfg.basename)


def load_candidates(cfg: Config, progress: bool = False) -> Tuple[CandidateList, GridOrigin]:
    return ingest.read_candidate_files(
        input_paths(cfg),
        max_candidates=cfg.max_candidates,
        progress=progress,
    )


def compute_cells(cfg: Config, candidates: CandidateList, origin: GridOrigin) -> Tuple[ReplicaList, CellData]:
    replicas = grid.replicate_candidates(candidates, origin, cfg)
    cells = clustering.build_cells(replicas, cfg.stat_threshold)
    return replicas, cells


def _remove_quietly(paths: List[str]) -> None:
    for p in paths:
        # the failing path may sit under a missing or non-directory parent
        if os.path.isfile(p):
            os.remove(p)


def write_products(cfg: Config, result: CoincidenceResult) -> List[str]:
    """
    Write every product. If any write fails, every file this call has
    opened, including the one being written, is removed and the error
    propagates.
    """
    written: List[str] = []
    try:
        for path, text in result.report.files.items():
            written.append(path)
            reporting.write_report(reporting.Report({path: text}))
        if result.table is not None:
            csv_path = f"{cfg.table_prefix}_cells.csv"
            vot_path = f"{cfg.table_prefix}_cells.vot"
            written += [csv_path, vot_path]
            reporting.save_cells_table(result.table, csv_path=csv_path, vot_path=vot_path)
            log.info("Saved %d cells to %s and %s", len(result.table), csv_path, vot_path)
        if cfg.plot_path:
            from fastcoinc import plotting
            written.append(cfg.plot_path)
            plotting.plot_frequency_maxima(result.cells, cfg.plot_path)
    except Exception:
        _remove_quietly(written)
        raise
    return written


def run_coincidence(cfg: Config, *, write: bool = True, progress: bool = False) -> CoincidenceResult:
    """
    Ingest -> replicate -> cluster -> report.

    The configuration is validated before any file is opened, and all
    products are rendered in memory before the first one is written.
    """
    cfg.validate()

    candidates, origin = load_candidates(cfg, progress=progress)
    replicas, cells = compute_cells(cfg, candidates, origin)
    del candidates

    reporting.log_run_summary(cells, replicas)
    report = reporting.build_report(cells, replicas, cfg)
    table = reporting.cells_to_astropy_table(cells) if cfg.table_prefix else None

    result = CoincidenceResult(cells=cells, replicas=replicas, origin=origin,
                               report=report, table=table)
    if write:
        write_products(cfg, result)
    return result
